import pytest

from drip.drip_datatypes import ControlError, DripSyntaxError, EvaluationError
from drip.drip_template import compile_template, render, scan_chunks


def test_chunks_and_positions():
    chunks = scan_chunks("a\n  {{ x }}{% if y %}b{% endif %}")
    assert [c.kind for c in chunks] == ["text", "output", "tag", "text", "tag"]
    out = chunks[1]
    assert (out.line, out.col, out.args) == (2, 3, "x")
    tag = chunks[2]
    assert (tag.name, tag.args) == ("if", "y")


@pytest.mark.parametrize("src, expected", [
    ("a  {{- 'b' -}}  c", "abc"),
    ("a \n{%- if true -%}\n b {%- endif %} c", "ab c"),
    ("[ {{ 'x' }} ]", "[ x ]"),
])
def test_whitespace_control(src, expected):
    assert render(src) == expected


@pytest.mark.parametrize("src, expected", [
    ("{% raw %}{{ not parsed }}{% endfor %}{% endraw %}!", "{{ not parsed }}{% endfor %}!"),
    ("a{% comment %}{{ x | nope }}{% endcomment %}b", "ab"),
])
def test_verbatim_tags(src, expected):
    assert render(src) == expected


@pytest.mark.parametrize("src, expected", [
    ("{% if x > 1 %}big{% elsif x == 1 %}one{% else %}small{% endif %}", "one"),
    ("{% if x %}yes{% endif %}", "yes"),
    ("{% unless x == 1 %}no{% else %}one{% endunless %}", "one"),
    ("{% case x %}{% when 0 %}zero{% when 1, 2 %}low{% else %}high{% endcase %}", "low"),
    ("{% case 'b' %}{% when 'a' 'b' %}ab{% endcase %}", "ab"),
    ("{% case 9 %}{% when 1 %}one{% else %}other{% endcase %}", "other"),
    ("{% case 9 %}{% when 1 %}one{% endcase %}", ""),
])
def test_conditionals(src, expected):
    assert render(src, {"x": 1}) == expected


def test_output_formatting():
    bindings = {"n": None, "t": True, "l": ["a", 1], "f": 2.5, "m": {"k": "v"}}
    assert render("{{ n }}|{{ t }}|{{ l }}|{{ f }}|{{ m }}", bindings) == '|true|a1|2.5|{"k"=>"v"}'


def test_assign():
    assert render("{% assign x = 'a' | upcase %}{{ x }}") == "A"


def test_assign_in_loop_writes_to_template_scope():
    src = "{% for i in (1..3) %}{% assign last = i %}{% endfor %}{{ last }}{{ i }}"
    assert render(src) == "3"


def test_templates_render_repeatedly():
    tpl = compile_template("{% for i in xs %}{% cycle 'a', 'b' %}{% endfor %}")
    assert tpl.render({"xs": [1, 2, 3]}) == "aba"
    assert tpl.render({"xs": [1]}) == "a"


@pytest.mark.parametrize("src, message", [
    ("{% break %}", "break outside a loop"),
    ("{% continue %}", "continue outside a loop"),
    ("{% if true %}{% break %}{% endif %}", "break outside a loop"),
    ("{% cycle 'a', 'b' %}", "cycle must be within a forloop"),
])
def test_control_errors(src, message):
    with pytest.raises(ControlError) as ei:
        render(src)
    assert message in str(ei.value)


@pytest.mark.parametrize("src, message", [
    ("{% for a b c %}{% endfor %}", "parse error"),
    ("{% for a in array offset %}{% endfor %}", "undefined loop modifier"),
    ("{% cycle %}", "parse error"),
    ("{% for a in b %}", "'for' tag not terminated"),
    ("{% if x %}{% for a in b %}{% endif %}", "unexpected 'endif' tag"),
    ("{% endfor %}", "unexpected 'endfor' tag"),
    ("{% else %}", "unexpected 'else' tag"),
    ("{% frobnicate %}", "undefined tag 'frobnicate'"),
    ("{% break now %}", "'break' tag takes no arguments"),
    ("{% raw %}never closed", "'raw' tag not terminated"),
    ("{{ a b }}", "parse error"),
])
def test_syntax_errors(src, message):
    with pytest.raises(DripSyntaxError) as ei:
        compile_template(src)
    assert message in str(ei.value)


def test_syntax_error_carries_location():
    with pytest.raises(DripSyntaxError) as ei:
        compile_template("line one\n  {{ a b }}")
    assert ei.value.loc["line"] == 2
    assert ei.value.loc["col"] == 3


def test_evaluation_error_carries_location():
    with pytest.raises(EvaluationError) as ei:
        render("ok\n{% for i in (1..3) %}{{ i | nosuch }}{% endfor %}")
    assert "undefined filter 'nosuch'" in str(ei.value)
    assert ei.value.loc["line"] == 2
