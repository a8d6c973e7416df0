from locatorsynth.dom import parse_document
from locatorsynth.frameworks import (
    ComponentAttributeConvention,
    DataGridConvention,
    GridTableConvention,
    detect_component_attribute,
    detect_data_grid,
    detect_framework_locators,
    detect_frontend_framework,
    detect_grid_table,
    most_specific,
)

HEX_ROW_GRID = """
<div class="ag-root-wrapper" id="ordersGrid">
  <div role="row" row-id="3f9a2b7c1d">
    <div role="gridcell" col-id="name">Alice Smith</div>
    <div role="gridcell" col-id="total">$10</div>
  </div>
  <div role="row" row-id="9c8b7a6f5e">
    <div role="gridcell" col-id="name">Bob Jones</div>
    <div role="gridcell" col-id="total">$12</div>
  </div>
</div>
"""


def test_data_grid_never_emits_volatile_row_id() -> None:
    root = parse_document(HEX_ROW_GRID)
    cell = root.xpath("//div[@row-id='9c8b7a6f5e']/div[@col-id='total']")[0]

    match = detect_data_grid(cell)
    assert isinstance(match, DataGridConvention)
    assert match.component == "cell"
    assert match.row_id is None
    assert match.row_anchor_text == "Bob Jones"
    assert match.selector == (
        '[id="ordersGrid"] [role="row"]:has([role="gridcell"]:has-text("Bob Jones")) [col-id="total"]'
    )
    assert "9c8b7a6f5e" not in str(match.to_payload())


def test_data_grid_falls_back_to_row_position() -> None:
    root = parse_document(
        '<div class="ag-theme-alpine">'
        '<div role="row" row-id="aa11bb22cc"><div role="gridcell" col-id="status">Pending</div></div>'
        '<div role="row" row-id="dd33ee44ff"><div role="gridcell" col-id="status">Pending</div></div>'
        "</div>"
    )
    cell = root.xpath("//div[@role='gridcell']")[1]

    match = detect_data_grid(cell)
    assert match is not None
    assert match.row_anchor_text is None
    assert match.row_index == 2
    assert match.grid_selector == ".ag-theme-alpine"
    assert match.selector == '.ag-theme-alpine [role="row"]:nth-child(2) [col-id="status"]'
    assert "dd33ee44ff" not in str(match.to_payload())


def test_data_grid_keeps_stable_row_id_and_headers() -> None:
    root = parse_document(
        '<div class="ag-root-wrapper" id="usersGrid">'
        '<div role="columnheader" col-id="email">Email</div>'
        '<div role="row" row-id="adminUser"><div role="gridcell" col-id="email">admin</div></div>'
        "</div>"
    )
    cell = root.xpath("//div[@role='gridcell']")[0]
    header = root.xpath("//div[@role='columnheader']")[0]

    assert detect_data_grid(cell).selector == '[id="usersGrid"] [row-id="adminUser"] [col-id="email"]'
    header_match = detect_data_grid(header)
    assert header_match.component == "header"
    assert header_match.selector == '[id="usersGrid"] [role="columnheader"][col-id="email"]'


def test_grid_table_cell_position_within_component_grid() -> None:
    root = parse_document(
        '<div class="dx-datagrid dx-gridbase-container" data-component-id="ordersGrid"><table><tbody>'
        '<tr class="dx-row dx-data-row"><td>A</td></tr>'
        '<tr class="dx-row dx-data-row"><td>B</td><td>C</td></tr>'
        "</tbody></table></div>"
    )
    cell = root.xpath("//td[normalize-space(.)='C']")[0]

    match = detect_grid_table(cell)
    assert isinstance(match, GridTableConvention)
    assert match.component == "datagrid"
    assert match.row_index == 2
    assert match.cell_index == 2
    assert match.cell_selector == '.dx-datagrid[data-component-id="ordersGrid"] .dx-row:nth-child(2) td:nth-child(2)'


def test_grid_table_button_prefers_component_id() -> None:
    root = parse_document(
        '<div class="dx-button" data-component-id="saveOrder"><span class="dx-button-content">Save</span></div>'
        '<div class="dx-button"><span class="dx-button-content">Close</span></div>'
    )
    save = root.xpath("//span")[0]
    close = root.xpath("//span")[1]

    assert detect_grid_table(save).selector == '.dx-button[data-component-id="saveOrder"]'
    assert detect_grid_table(close).selector == '.dx-button:has-text("Close")'


def test_component_attribute_button_and_table() -> None:
    root = parse_document(
        '<button data-nexus-id="submit-btn">Go</button>'
        '<table data-component="table" data-nexus-id="ordersTable"><tbody>'
        '<tr data-row-id="orderAlpha"><td>x</td></tr>'
        '<tr data-row-id="row-123"><td>y</td></tr>'
        "</tbody></table>"
    )
    button = root.xpath("//button")[0]
    stable_cell, volatile_cell = root.xpath("//td")

    button_match = detect_component_attribute(button)
    assert isinstance(button_match, ComponentAttributeConvention)
    assert button_match.selector == '[data-nexus-id="submit-btn"]'

    assert detect_component_attribute(stable_cell).selector == '[data-nexus-id="ordersTable"] [data-row-id="orderAlpha"]'
    volatile_match = detect_component_attribute(volatile_cell)
    assert volatile_match.selector == '[data-nexus-id="ordersTable"] tr:nth-child(2)'
    assert "row-123" not in str(volatile_match.to_payload())


def test_component_attribute_input_uses_label_when_id_is_volatile() -> None:
    root = parse_document(
        '<div data-component="input" data-label="Email"><input data-nexus-id="input-8f3a9c2e11"></div>'
    )
    field = root.xpath("//input")[0]

    match = detect_component_attribute(field)
    assert match.component == "input"
    assert match.component_id is None
    assert match.selector == '[data-label="Email"] input'


def test_plain_markup_matches_no_detector() -> None:
    root = parse_document("<form><input name='q'><button>Search</button></form>")
    for node in root.xpath("//input | //button"):
        assert detect_framework_locators(node) == []


def test_most_specific_prefers_innermost_match() -> None:
    root = parse_document(
        '<div data-component="table" data-nexus-id="ordersTable">'
        '<div class="ag-root-wrapper" id="ordersGrid">'
        '<div role="row" row-id="rowAlpha"><div role="gridcell" col-id="name">Alice Smith</div></div>'
        "</div></div>"
    )
    cell = root.xpath("//div[@role='gridcell']")[0]

    matches = detect_framework_locators(cell)
    assert {item.family for item in matches} == {"data_grid", "component_attribute"}
    innermost = most_specific(matches)
    assert isinstance(innermost, DataGridConvention)
    assert innermost.component == "cell"
    assert most_specific([]) is None


def test_detect_frontend_framework() -> None:
    assert detect_frontend_framework(parse_document('<html ng-version="17.0.0"><body><p>x</p></body></html>')) == "angular"
    react = parse_document('<html><body><div data-reactroot=""><p>x</p></div></body></html>')
    assert detect_frontend_framework(react.xpath("//p")[0]) == "react"
    vue = parse_document('<html><body><div data-v-app=""><p data-v-7ba5bd90="">x</p></div></body></html>')
    assert detect_frontend_framework(vue.xpath("//p")[0]) == "vue"
    assert detect_frontend_framework(parse_document("<p>x</p>")) == "unknown"


def test_grid_table_uses_grid_root_through_rowsview_wrapper() -> None:
    root = parse_document(
        '<div class="dx-datagrid dx-gridbase-container" data-component-id="ordersGrid">'
        '<div class="dx-datagrid-headers"><table><tr class="dx-row dx-header-row"><td>Name</td></tr></table></div>'
        '<div class="dx-datagrid-rowsview" id="rowsView"><table><tbody>'
        '<tr class="dx-row dx-data-row"><td>A</td></tr>'
        '<tr class="dx-row dx-data-row"><td>B</td><td>C</td></tr>'
        "</tbody></table></div></div>"
    )
    cell = root.xpath("//td[normalize-space(.)='C']")[0]

    match = detect_grid_table(cell)
    assert match.component_id == "ordersGrid"
    assert match.cell_selector == '.dx-datagrid[data-component-id="ordersGrid"] .dx-row:nth-child(2) td:nth-child(2)'


def test_grid_table_falls_back_to_prefixed_wrapper_class() -> None:
    root = parse_document(
        '<div class="dx-datagrid-rowsview" id="rowsView"><table><tbody>'
        '<tr class="dx-row"><td>A</td></tr>'
        "</tbody></table></div>"
    )
    cell = root.xpath("//td")[0]

    match = detect_grid_table(cell)
    assert match.component_id is None
    assert match.selector == '.dx-datagrid-rowsview[id="rowsView"] .dx-row:nth-child(1) td:nth-child(1)'


def test_grid_table_textbox_selectbox_and_form() -> None:
    root = parse_document(
        '<div class="dx-textbox dx-texteditor"><div class="dx-texteditor-container">'
        '<input class="dx-texteditor-input" placeholder="Search orders"></div></div>'
        '<div class="dx-textbox"><input data-component-id="customerName"></div>'
        '<div class="dx-selectbox" data-component-id="countryPicker"><span>Choose</span></div>'
        '<div class="dx-form" id="orderForm"><label>Name</label></div>'
    )
    search, customer = root.xpath("//input")
    choose = root.xpath("//span")[0]
    label = root.xpath("//label")[0]

    search_match = detect_grid_table(search)
    assert search_match.component == "textbox"
    assert search_match.selector == '.dx-textbox input[placeholder="Search orders"]'
    assert search_match.text == "Search orders"
    assert detect_grid_table(customer).selector == 'input[data-component-id="customerName"]'

    select_match = detect_grid_table(choose)
    assert select_match.component == "selectbox"
    assert select_match.selector == '.dx-selectbox[data-component-id="countryPicker"]'

    form_match = detect_grid_table(label)
    assert form_match.component == "form"
    assert form_match.selector == '.dx-form[id="orderForm"]'


def test_component_modal_and_button_inside_modal() -> None:
    root = parse_document(
        '<div data-component="modal" data-nexus-id="confirmDialog">'
        '<div class="modal-title">Confirm order</div>'
        '<button data-component="button">OK</button>'
        "</div>"
    )
    modal = root.xpath("//div[@data-component='modal']")[0]
    button = root.xpath("//button")[0]

    modal_match = detect_component_attribute(modal)
    assert modal_match.component == "modal"
    assert modal_match.selector == '[data-nexus-id="confirmDialog"]'
    assert modal_match.modal_title == "Confirm order"

    button_match = detect_component_attribute(button)
    assert button_match.component == "button"
    assert button_match.selector == '[data-component="button"]:has-text("OK")'
    assert button_match.in_modal
    assert button_match.modal_title == "Confirm order"
