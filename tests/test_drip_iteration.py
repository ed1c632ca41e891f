import re

import pytest

from drip.drip_config import Config
from drip.drip_datatypes import (
    ControlError, ControlSignal, Cycle, EvaluationError, Scope
)
from drip.drip_iteration import LoopRunner, evaluate_cycle, loop_items, loop_sequence
from drip.drip_parser import parse_loop
from drip.drip_template import render

BINDINGS = {
    "array": ["first", "second", "third"],
    "hash": {"a": 1},
    "products": [
        "Cool Shirt", "Alien Poster", "Batman Poster", "Bullseye Shirt",
        "Another Classic Vinyl", "Awesome Jeans",
    ],
    "empty": [],
    "two": 2,
}


def run(src, bindings=BINDINGS, **kwargs):
    return render(src, bindings, **kwargs)


def collapse(s):
    return re.sub(r"\n\s*", "", s)


@pytest.mark.parametrize("src, expected", [
    ("{% for a in array %}{{ a }} {% endfor %}", "first second third "),
    # modifiers
    ("{% for a in array reversed %}{{ a }}.{% endfor %}", "third.second.first."),
    ("{% for a in array limit:2 %}{{ a }}.{% endfor %}", "first.second."),
    ("{% for a in array offset:1 %}{{ a }}.{% endfor %}", "second.third."),
    ("{% for a in array limit: two %}{{ a }}.{% endfor %}", "first.second."),
    ("{% for a in array offset:1 limit:1 %}{{ a }}.{% endfor %}", "second."),
    ("{% for a in array limit:1 offset:1 %}{{ a }}.{% endfor %}", "second."),
    ("{% for a in array reversed offset:1 %}{{ a }}.{% endfor %}", "third.second."),
    ("{% for a in array reversed limit:2 %}{{ a }}.{% endfor %}", "second.first."),
    ("{% for a in array offset:5 %}{{ a }}.{% endfor %}", ""),
    ("{% for a in array limit:0 %}{{ a }}.{% endfor %}", ""),
    # forloop metadata
    ("{% for a in array %}{{ forloop.first }}.{% endfor %}", "true.false.false."),
    ("{% for a in array %}{{ forloop.last }}.{% endfor %}", "false.false.true."),
    ("{% for a in array %}{{ forloop.index }}.{% endfor %}", "1.2.3."),
    ("{% for a in array %}{{ forloop.index0 }}.{% endfor %}", "0.1.2."),
    ("{% for a in array %}{{ forloop.rindex }}.{% endfor %}", "3.2.1."),
    ("{% for a in array %}{{ forloop.rindex0 }}.{% endfor %}", "2.1.0."),
    ("{% for a in array %}{{ forloop.length }}.{% endfor %}", "3.3.3."),
    ("{% for a in array reversed %}{{ forloop.index }}.{% endfor %}", "1.2.3."),
    ("{% for a in array reversed %}{{ forloop.first }}.{% endfor %}", "true.false.false."),
    ("{% for a in array limit:2 %}{{ forloop.rindex }}.{% endfor %}", "2.1."),
    ("{% for a in array limit:2 %}{{ forloop.last }}.{% endfor %}", "false.true."),
    ("{% for a in array offset:1 %}{{ forloop.length }}.{% endfor %}", "2.2."),
    ("{% for a in array offset:1 %}{{ forloop.first }}.{% endfor %}", "true.false."),
    # nesting
    ("{% for i in array %}{{ forloop.index }}[{% for j in array %}{{ forloop.index }}{% endfor %}]"
     "{{ forloop.index }}{% endfor %}", "1[123]12[123]23[123]3"),
    ("{% for i in (1..2) %}{% for j in (1..2) %}{{ i }}{{ j }} {% endfor %}{% endfor %}", "11 12 21 22 "),
    # break and continue
    ("{% for a in array %}{% if a == 'second' %}{% break %}{% endif %}{{ a }}{% endfor %}", "first"),
    ("{% for a in array %}{% if a == 'second' %}{% continue %}{% endif %}{{ a }}.{% endfor %}", "first.third."),
    ("{% for a in array %}{{ a }}{% break %}!{% endfor %}", "first"),
    ("{% for i in (1..2) %}{% for j in (1..3) %}{% if j == 2 %}{% break %}{% endif %}{{ i }}{{ j }}"
     "{% endfor %};{% endfor %}", "11;21;"),
    ("{% for i in (1..3) %}{% unless i == 2 %}{{ i }}{% else %}{% continue %}{% endunless %}.{% endfor %}", "1.3."),
    # sources
    ("{% for a in hash %}{{ a }}{% endfor %}", "a"),
    ("{% for i in (3 .. 5) %}{{i}}.{% endfor %}", "3.4.5."),
    ("{% for i in (3..5) %}{{i}}.{% endfor %}", "3.4.5."),
    ("{% for i in (5..3) %}{{i}}.{% endfor %}done", "done"),
    ("{% for a in missing %}{{ a }}{% endfor %}done", "done"),
    ("{% for a in empty %}x{% else %}none{% endfor %}", "none"),
    ("{% for a in array limit:0 %}x{% else %}none{% endfor %}", "none"),
    ("{% for a in array %}{{ a }}{% else %}none{% endfor %}", "firstsecondthird"),
])
def test_for_loops(src, expected):
    assert run(src) == expected


@pytest.mark.parametrize("src, expected", [
    ("{% for a in array %}{% cycle 'even', 'odd' %}.{% endfor %}", "even.odd.even."),
    ("{% for a in array %}{% cycle '0', '1' %},{% cycle '0', '1' %}.{% endfor %}", "0,1.0,1.0,1."),
    ("{% for a in array %}{% cycle 'a': '0', '1' %},{% cycle 'b': '0', '1' %}.{% endfor %}", "0,0.1,1.0,0."),
    ("{% for a in array %}{% cycle g: 'x', 'y' %}{% cycle '0', '1' %}.{% endfor %}", "x0.y1.x0."),
    ("{% for a in array %}{% cycle 'a', 'b', 'c', 'd' %}{% endfor %}", "abc"),
    # counters reset on every loop entry
    ("{% for i in (1..2) %}[{% for a in array %}{% cycle 'x', 'y' %}{% endfor %}]{% endfor %}", "[xyx][xyx]"),
    ("{% for a in array limit:1 %}{% cycle 'x', 'y' %}{% endfor %}"
     "{% for a in array limit:1 %}{% cycle 'x', 'y' %}{% endfor %}", "xx"),
    # inner loops have their own counters
    ("{% for i in (1..2) %}{% cycle 'o1', 'o2' %}{% for j in (1..1) %}{% cycle 'o1', 'o2' %}{% endfor %}"
     "{% endfor %}", "o1o1o2o1"),
])
def test_cycle(src, expected):
    assert run(src) == expected


def test_tablerow_single_row():
    out = run("{% tablerow product in products %}{{ product }}{% endtablerow %}")
    assert collapse(out) == (
        '<tr class="row1"><td class="col1">Cool Shirt</td><td class="col2">Alien Poster</td>'
        '<td class="col3">Batman Poster</td><td class="col4">Bullseye Shirt</td>'
        '<td class="col5">Another Classic Vinyl</td><td class="col6">Awesome Jeans</td></tr>'
    )


def test_tablerow_cols():
    out = run("{% tablerow product in products cols:2 %}{{ product }}{% endtablerow %}")
    assert collapse(out) == (
        '<tr class="row1"><td class="col1">Cool Shirt</td><td class="col2">Alien Poster</td></tr>'
        '<tr class="row2"><td class="col1">Batman Poster</td><td class="col2">Bullseye Shirt</td></tr>'
        '<tr class="row3"><td class="col1">Another Classic Vinyl</td><td class="col2">Awesome Jeans</td></tr>'
    )


def test_tablerow_partial_last_row_and_metadata():
    out = run("{% tablerow i in (1..5) cols:2 %}{{ forloop.row }}:{{ forloop.col }}"
              "{% if forloop.col_last %}!{% endif %}{% endtablerow %}")
    assert collapse(out) == (
        '<tr class="row1"><td class="col1">1:1</td><td class="col2">1:2!</td></tr>'
        '<tr class="row2"><td class="col1">2:1</td><td class="col2">2:2!</td></tr>'
        '<tr class="row3"><td class="col1">3:1!</td></tr>'
    )


def test_tablerow_empty_source():
    assert run("{% tablerow a in empty %}{{ a }}{% endtablerow %}") == ""


def test_tablerow_break_closes_the_row():
    out = run("{% tablerow a in array cols:2 %}{{ a }}{% break %}{% endtablerow %}")
    assert out == '<tr class="row1"><td class="col1">first</td></tr>'


def test_tablerow_continue_closes_the_cell():
    out = run("{% tablerow a in array cols:2 %}{% if a == 'second' %}{% continue %}{% endif %}"
              "{{ a }}{% endtablerow %}")
    assert out == (
        '<tr class="row1"><td class="col1">first</td><td class="col2"></td></tr>\n'
        '<tr class="row2"><td class="col1">third</td></tr>'
    )


# --- Engine level ---

def test_loop_items_order_offset_limit_reversed():
    header = parse_loop("i in (1..10) reversed limit: 3 offset: 2")
    assert [v.interface() for v in loop_items(header, Scope())] == [5, 4, 3]


def test_negative_modifiers_clamp_to_zero():
    header = parse_loop("i in (1..3) offset: -1")
    assert [v.interface() for v in loop_items(header, Scope())] == [1, 2, 3]
    header = parse_loop("i in (1..3) limit: -1")
    assert loop_items(header, Scope()) == []


def test_bad_modifier_value_is_an_evaluation_error():
    header = parse_loop("i in (1..3) limit: 'many'")
    with pytest.raises(EvaluationError) as ei:
        loop_items(header, Scope())
    assert "limit" in str(ei.value)


def test_source_is_evaluated_once_per_entry():
    calls = []
    scope = Scope({"items": [1, 2, 3]})
    header = parse_loop("i in items")
    original = header.source.fn

    def counting(s):
        calls.append(1)
        return original(s)
    header.source.fn = counting

    seen = []

    def body(frame, out):
        seen.append(frame.get("i"))
        return ControlSignal.NONE

    LoopRunner().run_for(header, scope, body, [])
    assert seen == [1, 2, 3]
    assert calls == [1]


def test_loop_bindings_do_not_leak():
    scope = Scope({"i": "outer"})
    header = parse_loop("i in (1..2)")
    LoopRunner().run_for(header, scope, lambda frame, out: ControlSignal.NONE, [])
    assert scope.get("i") == "outer"
    assert "forloop" not in scope


def test_iteration_limit():
    runner = LoopRunner(Config(max_loop_iters=5))
    header = parse_loop("i in (1..6)")
    with pytest.raises(EvaluationError) as ei:
        runner.run_for(header, Scope(), lambda frame, out: ControlSignal.NONE, [])
    assert "for: iteration limit exceeded" in str(ei.value)


def test_iteration_limit_from_render():
    with pytest.raises(EvaluationError):
        run("{% for i in (1..6) %}{% endfor %}", config=Config(max_loop_iters=5))
    assert run("{% for i in (1..5) %}{% endfor %}ok", config=Config(max_loop_iters=5)) == "ok"


HUGE = "(1..1000000000)"


def test_huge_range_is_not_materialized():
    config = Config(max_loop_iters=5)
    assert run("{% for i in " + HUGE + " limit:2 %}{{ i }}.{% endfor %}", config=config) == "1.2."
    assert run("{% for i in " + HUGE + " offset:999999998 reversed %}{{ i }}.{% endfor %}",
               config=config) == "1000000000.999999999."
    assert collapse(run("{% tablerow i in " + HUGE + " limit:1 %}{{ i }}{% endtablerow %}", config=config)) == (
        '<tr class="row1"><td class="col1">1</td></tr>'
    )


def test_huge_range_hits_the_cap_before_iterating():
    for tag in ("for", "tablerow"):
        with pytest.raises(EvaluationError) as ei:
            run("{% " + tag + " i in " + HUGE + " %}{% end" + tag + " %}", config=Config(max_loop_iters=5))
        assert f"{tag}: iteration limit exceeded" in str(ei.value)


def test_loop_sequence_keeps_ranges_lazy():
    header = parse_loop("i in " + HUGE + " offset: 10 limit: 3 reversed")
    seq = loop_sequence(header, Scope())
    assert isinstance(seq, range)
    assert list(seq) == [13, 12, 11]


def test_cycle_outside_loop():
    with pytest.raises(ControlError) as ei:
        evaluate_cycle(Cycle("", ("a", "b")), Scope())
    assert "cycle must be within a forloop" in str(ei.value)
