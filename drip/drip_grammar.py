"""
LALR grammar for Drip statements.

The first token selects the start form: a bare expression, or one of the
selector tokens %assign, %cycle, %loop and %when that the template layer
prepends to tag arguments. All terminals are produced by drip_scanner, so
they are only declared here.
"""

GRAMMAR = r"""
start: cond                                   -> expression_statement
     | _ASSIGN IDENTIFIER _EQUAL cond         -> assignment
     | _CYCLE cycle                           -> cycle_statement
     | _LOOP loop                             -> loop_statement
     | _WHEN when_list                        -> when_statement

// cycle 'a', 'b'  |  cycle 'group': 'a', 'b'  |  cycle group: 'a', 'b'
cycle: cycle_string cycle_tail
     | KEYWORD cycle_string cycle_more        -> named_cycle
cycle_tail: _COLON cycle_string cycle_more    -> grouped_tail
          | cycle_more                        -> plain_tail
cycle_more: (_COMMA cycle_string)*
cycle_string: LITERAL

loop: IDENTIFIER _IN filtered loop_modifier*
loop_modifier: IDENTIFIER                     -> flag_modifier
             | KEYWORD expr                   -> valued_modifier

when_list: (cond (_COMMA? cond)*)?

?cond: conj
     | cond _OR conj                          -> or_op

?conj: rel
     | conj _AND rel                          -> and_op

?rel: filtered
    | filtered _EQ filtered                   -> eq_op
    | filtered _NEQ filtered                  -> neq_op
    | filtered _LT filtered                   -> lt_op
    | filtered _GT filtered                   -> gt_op
    | filtered _LE filtered                   -> le_op
    | filtered _GE filtered                   -> ge_op
    | filtered _CONTAINS filtered             -> contains_op
    | filtered _IN filtered                   -> in_op

?filtered: expr
         | filtered _PIPE IDENTIFIER          -> filter_call
         | filtered _PIPE KEYWORD filter_args -> filter_call_args

filter_args: expr (_COMMA expr)*

?expr: LITERAL                                -> literal
     | IDENTIFIER                             -> variable
     | expr PROPERTY                          -> property_access
     | expr _LSQB cond _RSQB                  -> index_access
     | _LPAR cond _RPAR
     | _LPAR cond _DOTDOT cond _RPAR          -> range_literal

%declare LITERAL IDENTIFIER KEYWORD PROPERTY
%declare _ASSIGN _CYCLE _LOOP _WHEN
%declare _EQ _NEQ _GE _LE _LT _GT _IN _AND _OR _CONTAINS _DOTDOT
%declare _PIPE _EQUAL _COLON _COMMA _LPAR _RPAR _LSQB _RSQB
"""
