from locatorsynth.css_synthesizer import css_segment, synthesize_css
from locatorsynth.dom import Context, parse_document
from locatorsynth.validation import evaluate_locator


def test_unique_stable_id_yields_id_selector() -> None:
    root = parse_document('<div id="main"><button id="saveBtn">Save</button><button>Close</button></div>')
    button = root.get_element_by_id("saveBtn")

    located = synthesize_css(button)
    assert located.expression == "#saveBtn"
    assert located.strategy == "id"
    assert located.unique


def test_volatile_id_is_skipped_for_stable_attribute() -> None:
    root = parse_document('<form><input id="ember1234" name="email"><input name="password"></form>')
    field = root.xpath("//input[@name='email']")[0]

    located = synthesize_css(field)
    assert located.expression == 'input[name="email"]'
    assert located.strategy == "ascending_path"
    assert "ember1234" not in located.expression


def test_id_met_mid_climb_ends_the_climb_and_positions_disambiguate() -> None:
    root = parse_document(
        '<div id="loginForm">'
        '<div><input type="text"></div>'
        '<div><input type="text"></div>'
        "</div>"
    )
    first = root.xpath("//input")[0]

    located = synthesize_css(first)
    assert located.expression == "#loginForm > div:nth-of-type(1) > input:nth-of-type(1)"
    assert located.strategy == "positional"
    assert located.unique


def test_weak_duplicate_rows_fall_back_to_positional_path() -> None:
    root = parse_document(
        "<table><tbody>"
        "<tr><td>2024-01-01</td></tr>"
        "<tr><td>2024-01-01</td></tr>"
        "</tbody></table>"
    )
    second = root.xpath("//td")[1]
    context = Context.for_document(root)

    located = synthesize_css(second, context)
    assert located.unique
    assert located.expression.endswith("tr:nth-of-type(2) > td:nth-of-type(1)")
    assert evaluate_locator(located.expression, context, "css", second).unique


def test_css_segment_uses_attribute_priority() -> None:
    root = parse_document('<button aria-label="Close dialog" data-testid="closeDialog" name="close">x</button>')
    button = root.xpath("//button")[0]
    assert css_segment(button) == 'button[name="close"]'
