from locatorsynth.dom import Context, parse_document
from locatorsynth.locator_generator import accessible_name, generate_locator_candidates, implicit_role, label_text
from locatorsynth.models import FrameBoundary
from locatorsynth.settings import SynthesisSettings

LOGIN_FORM = """
<html><body>
<form id="loginForm">
  <label for="email">Email address</label>
  <input id="email" type="email" name="email" placeholder="you@example.org">
  <button data-testid="submitLogin" type="submit">Sign in</button>
  <a href="/help">Need help?</a>
</form>
</body></html>
"""


def _node(markup: str, xpath: str):
    root = parse_document(markup)
    return root.xpath(xpath)[0], Context.for_document(root)


def test_label_wins_for_labelled_input() -> None:
    node, context = _node(LOGIN_FORM, "//input")

    result = generate_locator_candidates(node, context)

    assert result.best.method == "label"
    assert result.best.value == 'get_by_label("Email address")'
    assert result.best.action == "fill"
    assert result.best.guaranteed
    assert result.css.expression == "#email"
    assert result.input_type == "email"

    by_method = {item.method: item for item in result.candidates}
    assert by_method["placeholder"].locator == 'get_by_placeholder("you@example.org")'
    assert by_method["placeholder"].uniqueness_count == 1
    assert by_method["css"].uniqueness_count == 1
    assert by_method["xpath"].locator == "//*[@id='email']"


def test_test_id_wins_for_button() -> None:
    node, context = _node(LOGIN_FORM, "//button")

    result = generate_locator_candidates(node, context)

    assert result.best.method == "test_id"
    assert result.best.value == 'get_by_test_id("submitLogin")'
    assert result.best.action == "click"
    assert result.best.guaranteed
    assert result.candidates[0].metadata["recommendation_label"] == "Recommended"


def test_link_prefers_named_role_over_text() -> None:
    node, context = _node(LOGIN_FORM, "//a")

    result = generate_locator_candidates(node, context)

    assert result.best.method == "role"
    assert result.best.value == 'get_by_role("link", name="Need help?")'
    text = next(item for item in result.candidates if item.method == "text")
    assert text.locator == 'get_by_text("Need help?", exact=True)'
    assert text.uniqueness_count == 1


def test_volatile_test_id_is_skipped() -> None:
    node, context = _node('<button data-testid="btn-8f3a9c2e11">Pay</button>', "//button")

    result = generate_locator_candidates(node, context)

    assert all(item.method != "test_id" for item in result.candidates)
    assert result.best.method == "role"


def test_framework_candidates_are_reported() -> None:
    node, context = _node('<div><button data-nexus-id="submit-btn">Go</button></div>', "//button")

    result = generate_locator_candidates(node, context)

    framework = next(item for item in result.candidates if item.method == "framework")
    assert framework.locator == '[data-nexus-id="submit-btn"]'
    assert framework.uniqueness_count == 1
    assert framework.metadata["most_specific"] is True
    assert result.best.value == 'locator("[data-nexus-id=\\"submit-btn\\"]")'


def test_payload_shape_and_snapshot_limit() -> None:
    node, context = _node(LOGIN_FORM, "//input")

    payload = generate_locator_candidates(node, context, SynthesisSettings(snapshot_limit=20)).to_payload()

    assert set(payload) == {
        "tag",
        "id",
        "inputType",
        "css",
        "xpath",
        "candidates",
        "best",
        "frameworks",
        "framework",
        "frame",
        "outerHTML",
    }
    assert payload["tag"] == "input"
    assert payload["css"]["unique"] is True
    assert payload["frame"] is None
    assert payload["framework"] == "unknown"
    assert len(payload["outerHTML"]) <= 20


def test_frame_boundary_scopes_structural_locators() -> None:
    node, context = _node(LOGIN_FORM, "//input")
    frame = FrameBoundary(selector="iframe#checkout", frame_id="checkout")

    result = generate_locator_candidates(node, context, frame=frame)

    css = next(item for item in result.candidates if item.method == "css")
    xpath = next(item for item in result.candidates if item.method == "xpath")
    assert css.metadata["scoped"] == "iframe#checkout >> internal:control=enter-frame >> #email"
    assert xpath.metadata["scoped"] == "iframe#checkout >> internal:control=enter-frame >> xpath=//*[@id='email']"
    assert result.to_payload()["frame"] == {"selector": "iframe#checkout", "id": "checkout", "name": ""}


def test_role_and_name_helpers() -> None:
    root = parse_document(
        '<input type="checkbox" aria-label="Remember me"><input type="submit" value="Go">'
        "<h2>Orders ✅</h2><div>plain</div>"
    )
    checkbox, submit = root.xpath("//input")
    heading = root.xpath("//h2")[0]
    plain = root.xpath("//div")[0]

    assert implicit_role(checkbox) == "checkbox"
    assert implicit_role(submit) == "button"
    assert implicit_role(heading) == "heading"
    assert implicit_role(plain) is None
    assert accessible_name(submit) == "Go"
    assert accessible_name(heading) == "Orders"
    assert label_text(checkbox, Context.for_document(root)) == "Remember me"
