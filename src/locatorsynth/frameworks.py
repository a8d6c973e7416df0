from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Literal, Union

from lxml.html import HtmlElement

from .dom import (
    child_position,
    closest,
    depth_of,
    iter_descendants,
    node_attr,
    node_classes,
    node_tag,
    node_text,
    parent_element,
)
from .selector_rules import escape_css_string, is_volatile
from .settings import SynthesisSettings
from .text_stabilizer import stabilize_text

FrontendFramework = Literal["angular", "react", "vue", "unknown"]

GRID_COMPONENT_ATTRIBUTE = "data-component-id"
DATA_GRID_CONTAINER_CLASSES = ("ag-root-wrapper", "ag-theme-alpine", "ag-theme-quartz", "ag-theme-balham")
COMPONENT_ID_ATTRIBUTE = "data-nexus-id"
ROW_ID_ATTRIBUTE = "data-row-id"

ROW_TEXT_MIN_LENGTH = 3
ROW_TEXT_MAX_LENGTH = 50


@dataclass(frozen=True, slots=True)
class GridTableConvention:
    """DevExpress-style widgets: ``dx-*`` classes plus ``data-component-id``."""

    family: ClassVar[str] = "grid_table"

    component: Literal["button", "textbox", "selectbox", "datagrid", "form"]
    selector: str
    anchor: HtmlElement = field(repr=False, compare=False)
    component_id: str | None = None
    text: str | None = None
    row_index: int | None = None
    cell_index: int | None = None
    row_selector: str | None = None
    cell_selector: str | None = None

    @property
    def depth(self) -> int:
        return depth_of(self.anchor)

    def to_payload(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "type": self.component,
            "selector": self.selector,
            "componentId": self.component_id,
            "text": self.text,
            "rowIndex": self.row_index,
            "cellIndex": self.cell_index,
            "rowSelector": self.row_selector,
            "cellSelector": self.cell_selector,
        }


@dataclass(frozen=True, slots=True)
class DataGridConvention:
    """AG Grid style grids addressed through ARIA roles, ``row-id`` and ``col-id``."""

    family: ClassVar[str] = "data_grid"

    component: Literal["row", "cell", "header"]
    selector: str | None
    grid_selector: str
    anchor: HtmlElement = field(repr=False, compare=False)
    row_selector: str | None = None
    row_id: str | None = None
    row_anchor_text: str | None = None
    row_index: int | None = None
    column_id: str | None = None
    text: str | None = None

    @property
    def depth(self) -> int:
        return depth_of(self.anchor)

    def to_payload(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "type": self.component,
            "selector": self.selector,
            "gridSelector": self.grid_selector,
            "rowSelector": self.row_selector,
            "rowId": self.row_id,
            "rowAnchorText": self.row_anchor_text,
            "rowIndex": self.row_index,
            "columnId": self.column_id,
            "text": self.text,
        }


@dataclass(frozen=True, slots=True)
class ComponentAttributeConvention:
    """Component libraries marked with ``data-nexus-id`` / ``data-component`` attributes."""

    family: ClassVar[str] = "component_attribute"

    component: Literal["button", "input", "modal", "table"]
    selector: str | None
    anchor: HtmlElement = field(repr=False, compare=False)
    component_id: str | None = None
    label: str | None = None
    text: str | None = None
    in_modal: bool = False
    modal_title: str | None = None
    row_selector: str | None = None

    @property
    def depth(self) -> int:
        return depth_of(self.anchor)

    def to_payload(self) -> dict[str, Any]:
        return {
            "family": self.family,
            "type": self.component,
            "selector": self.selector,
            "componentId": self.component_id,
            "label": self.label,
            "text": self.text,
            "inModal": self.in_modal,
            "modalTitle": self.modal_title,
            "rowSelector": self.row_selector,
        }


FrameworkConvention = Union[GridTableConvention, DataGridConvention, ComponentAttributeConvention]


def detect_framework_locators(
    node: HtmlElement,
    settings: SynthesisSettings | None = None,
) -> list[FrameworkConvention]:
    matches: list[FrameworkConvention] = []
    for detector in (detect_grid_table, detect_data_grid, detect_component_attribute):
        found = detector(node, settings)
        if found is not None:
            matches.append(found)
    return matches


def most_specific(matches: Iterable[FrameworkConvention]) -> FrameworkConvention | None:
    best: FrameworkConvention | None = None
    best_depth = -1
    for item in matches:
        depth = item.depth
        if depth > best_depth:
            best = item
            best_depth = depth
    return best


# -- grid/table widgets -----------------------------------------------------


def detect_grid_table(node: HtmlElement, settings: SynthesisSettings | None = None) -> GridTableConvention | None:
    found = _widget_root(node, "dx-datagrid")
    if found is not None:
        return _grid_table_datagrid(node, *found, settings)

    button = closest(node, lambda item: _has_class(item, "dx-button"))
    if button is not None:
        text = node_text(button) or None
        component_id = _stable_attr(button, GRID_COMPONENT_ATTRIBUTE, settings)
        if component_id:
            selector = f'.dx-button[{GRID_COMPONENT_ATTRIBUTE}="{escape_css_string(component_id)}"]'
        elif text:
            selector = f'.dx-button:has-text("{escape_css_string(text)}")'
        else:
            selector = ".dx-button"
        return GridTableConvention(
            component="button",
            selector=selector,
            anchor=button,
            component_id=component_id,
            text=text,
        )

    found = _widget_root(node, "dx-textbox")
    if found is not None:
        textbox, textbox_class = found
        field_input = node if node_tag(node) == "input" else _first_descendant(textbox, "input")
        source = field_input if field_input is not None else textbox
        component_id = _stable_attr(source, GRID_COMPONENT_ATTRIBUTE, settings) or _stable_attr(
            source, "id", settings
        )
        placeholder = node_attr(source, "placeholder")
        if component_id and node_attr(source, GRID_COMPONENT_ATTRIBUTE) == component_id:
            selector = f'input[{GRID_COMPONENT_ATTRIBUTE}="{escape_css_string(component_id)}"]'
        elif component_id:
            selector = f'input[id="{escape_css_string(component_id)}"]'
        elif placeholder:
            selector = f'.{textbox_class} input[placeholder="{escape_css_string(placeholder)}"]'
        else:
            selector = f".{textbox_class} input"
        return GridTableConvention(
            component="textbox",
            selector=selector,
            anchor=source,
            component_id=component_id,
            text=placeholder,
        )

    for component, prefix in (("selectbox", "dx-selectbox"), ("form", "dx-form")):
        found = _widget_root(node, prefix)
        if found is None:
            continue
        widget, widget_class = found
        component_id = _stable_attr(widget, GRID_COMPONENT_ATTRIBUTE, settings)
        if component_id:
            selector = f'.{widget_class}[{GRID_COMPONENT_ATTRIBUTE}="{escape_css_string(component_id)}"]'
        else:
            selector = _id_or_class(widget, widget_class, settings)
        return GridTableConvention(
            component=component,  # type: ignore[arg-type]
            selector=selector,
            anchor=widget,
            component_id=component_id,
        )

    return None


def _grid_table_datagrid(
    node: HtmlElement,
    grid: HtmlElement,
    grid_class: str,
    settings: SynthesisSettings | None,
) -> GridTableConvention:
    component_id = _stable_attr(grid, GRID_COMPONENT_ATTRIBUTE, settings)
    if component_id:
        grid_selector = f'.{grid_class}[{GRID_COMPONENT_ATTRIBUTE}="{escape_css_string(component_id)}"]'
    else:
        grid_selector = _id_or_class(grid, grid_class, settings)

    row = closest(node, lambda item: _has_class_prefix(item, "dx-row"))
    cell = closest(node, lambda item: _has_class_prefix(item, "dx-cell") or node_tag(item) == "td")
    if cell is not None and row is not None and not _is_inside(cell, row):
        cell = None

    row_index = child_position(row) if row is not None else None
    cell_index = child_position(cell) if cell is not None else None
    row_selector = f"{grid_selector} .dx-row:nth-child({row_index})" if row_index else None
    cell_selector = None
    if row_selector and cell is not None:
        cell_tag = "td" if node_tag(cell) == "td" else ".dx-cell"
        cell_selector = f"{row_selector} {cell_tag}:nth-child({cell_index})"

    anchor = cell if cell is not None else row if row is not None else grid
    return GridTableConvention(
        component="datagrid",
        selector=cell_selector or row_selector or grid_selector,
        anchor=anchor,
        component_id=component_id,
        text=node_text(anchor) or None,
        row_index=row_index,
        cell_index=cell_index,
        row_selector=row_selector,
        cell_selector=cell_selector,
    )


# -- data grids -------------------------------------------------------------


def detect_data_grid(node: HtmlElement, settings: SynthesisSettings | None = None) -> DataGridConvention | None:
    container = closest(node, _is_data_grid_container)
    if container is None:
        return None
    grid_selector = _data_grid_selector(container, settings)

    header = closest(node, _is_data_grid_header)
    if header is not None and _is_inside(header, container):
        column_id = node_attr(header, "col-id")
        text = node_text(header) or None
        if column_id:
            selector = f'{grid_selector} [role="columnheader"][col-id="{escape_css_string(column_id)}"]'
        elif text:
            selector = f'{grid_selector} [role="columnheader"]:has-text("{escape_css_string(text)}")'
        else:
            selector = None
        return DataGridConvention(
            component="header",
            selector=selector,
            grid_selector=grid_selector,
            anchor=header,
            column_id=column_id,
            text=text,
        )

    row = closest(node, _is_data_grid_row)
    if row is None or not _is_inside(row, container):
        return None

    raw_row_id = node_attr(row, "row-id") or node_attr(row, "id")
    row_id = raw_row_id if raw_row_id and not is_volatile(raw_row_id, settings) else None
    row_anchor_text: str | None = None
    row_index: int | None = None
    if row_id:
        row_selector = f'[row-id="{escape_css_string(row_id)}"]'
    else:
        row_anchor_text = _unique_row_text(row, container)
        if row_anchor_text:
            row_selector = f'[role="row"]:has([role="gridcell"]:has-text("{escape_css_string(row_anchor_text)}"))'
        else:
            row_index = child_position(row)
            row_selector = f'[role="row"]:nth-child({row_index})'

    cell = closest(node, _is_data_grid_cell)
    if cell is not None and _is_inside(cell, row):
        column_id = node_attr(cell, "col-id")
        column_index = node_attr(cell, "aria-colindex")
        if column_id:
            column_selector = f'[col-id="{escape_css_string(column_id)}"]'
        elif column_index:
            column_selector = f'[aria-colindex="{escape_css_string(column_index)}"]'
        else:
            column_selector = None
        selector = f"{grid_selector} {row_selector} {column_selector}" if column_selector else None
        return DataGridConvention(
            component="cell",
            selector=selector,
            grid_selector=grid_selector,
            anchor=cell,
            row_selector=row_selector,
            row_id=row_id,
            row_anchor_text=row_anchor_text,
            row_index=row_index,
            column_id=column_id or column_index,
            text=node_text(cell) or None,
        )

    return DataGridConvention(
        component="row",
        selector=f"{grid_selector} {row_selector}",
        grid_selector=grid_selector,
        anchor=row,
        row_selector=row_selector,
        row_id=row_id,
        row_anchor_text=row_anchor_text,
        row_index=row_index,
    )


def _is_data_grid_container(node: HtmlElement) -> bool:
    return any(token.startswith("ag-root") or token in DATA_GRID_CONTAINER_CLASSES for token in node_classes(node))


def _is_data_grid_row(node: HtmlElement) -> bool:
    return node_attr(node, "role") == "row" or _has_class_prefix(node, "ag-row")


def _is_data_grid_cell(node: HtmlElement) -> bool:
    return node_attr(node, "role") == "gridcell" or _has_class_prefix(node, "ag-cell")


def _is_data_grid_header(node: HtmlElement) -> bool:
    return node_attr(node, "role") == "columnheader" or _has_class_prefix(node, "ag-header-cell")


def _data_grid_selector(container: HtmlElement, settings: SynthesisSettings | None) -> str:
    outer = container
    # Prefer the outermost grid element carrying a stable id.
    for ancestor in _ancestors_inclusive(container):
        if not _is_data_grid_container(ancestor):
            break
        outer = ancestor
        grid_id = _stable_attr(ancestor, "id", settings)
        if grid_id:
            return f'[id="{escape_css_string(grid_id)}"]'
    for token in node_classes(outer):
        if token in DATA_GRID_CONTAINER_CLASSES or token.startswith("ag-root"):
            return f".{token}"
    return ".ag-root-wrapper"


def _unique_row_text(row: HtmlElement, container: HtmlElement) -> str | None:
    other_rows = [item for item in iter_descendants(container) if _is_data_grid_row(item) and item is not row]
    for cell in iter_descendants(row):
        if not _is_data_grid_cell(cell):
            continue
        stable = stabilize_text(node_text(cell))
        if not stable or not (ROW_TEXT_MIN_LENGTH <= len(stable) < ROW_TEXT_MAX_LENGTH):
            continue
        needle = stable.lower()
        if any(needle in node_text(other).lower() for other in other_rows):
            continue
        return stable
    return None


# -- data-attribute components ------------------------------------------------


def detect_component_attribute(
    node: HtmlElement,
    settings: SynthesisSettings | None = None,
) -> ComponentAttributeConvention | None:
    modal = closest(node, _is_component_modal)
    in_modal = modal is not None
    modal_title = _modal_title(modal) if modal is not None else None

    button = closest(node, _is_component_button)
    if button is not None:
        component_id = _stable_attr(button, COMPONENT_ID_ATTRIBUTE, settings)
        text = node_text(button) or None
        if component_id:
            selector = f'[{COMPONENT_ID_ATTRIBUTE}="{escape_css_string(component_id)}"]'
        elif text:
            selector = f'[data-component="button"]:has-text("{escape_css_string(text)}")'
        else:
            selector = None
        return ComponentAttributeConvention(
            component="button",
            selector=selector,
            anchor=button,
            component_id=component_id,
            text=text,
            in_modal=in_modal,
            modal_title=modal_title,
        )

    wrapper = closest(node, _is_component_input_wrapper)
    field_input: HtmlElement | None = None
    if node_tag(node) == "input":
        field_input = node
    elif wrapper is not None:
        field_input = _first_descendant(wrapper, "input")
    if wrapper is not None or (field_input is not None and node_attr(field_input, COMPONENT_ID_ATTRIBUTE)):
        component_id = None
        if field_input is not None:
            component_id = _stable_attr(field_input, COMPONENT_ID_ATTRIBUTE, settings)
        if component_id is None and wrapper is not None:
            component_id = _stable_attr(wrapper, COMPONENT_ID_ATTRIBUTE, settings)
        label = (node_attr(wrapper, "data-label") if wrapper is not None else None) or (
            node_attr(field_input, "aria-label") if field_input is not None else None
        )
        if component_id:
            selector = f'input[{COMPONENT_ID_ATTRIBUTE}="{escape_css_string(component_id)}"]'
        elif label and wrapper is not None and node_attr(wrapper, "data-label"):
            selector = f'[data-label="{escape_css_string(label)}"] input'
        elif label:
            selector = f'input[aria-label="{escape_css_string(label)}"]'
        else:
            selector = None
        return ComponentAttributeConvention(
            component="input",
            selector=selector,
            anchor=field_input if field_input is not None else wrapper,
            component_id=component_id,
            label=label,
            in_modal=in_modal,
            modal_title=modal_title,
        )

    table = closest(node, _is_component_table)
    if table is not None:
        table_id = _stable_attr(table, COMPONENT_ID_ATTRIBUTE, settings)
        table_selector = (
            f'[{COMPONENT_ID_ATTRIBUTE}="{escape_css_string(table_id)}"]' if table_id else '[data-component="table"]'
        )
        row = closest(
            node,
            lambda item: node_tag(item) == "tr" or node_attr(item, "role") == "row" or node_attr(item, ROW_ID_ATTRIBUTE) is not None,
        )
        row_selector: str | None = None
        if row is not None and _is_inside(row, table):
            row_id = node_attr(row, ROW_ID_ATTRIBUTE)
            if row_id and not is_volatile(row_id, settings):
                row_selector = f'[{ROW_ID_ATTRIBUTE}="{escape_css_string(row_id)}"]'
            else:
                row_selector = f"{node_tag(row)}:nth-child({child_position(row)})"
        return ComponentAttributeConvention(
            component="table",
            selector=f"{table_selector} {row_selector}" if row_selector else table_selector,
            anchor=row if row_selector and row is not None else table,
            component_id=table_id,
            in_modal=in_modal,
            modal_title=modal_title,
            row_selector=row_selector,
        )

    if modal is not None and modal is node:
        modal_id = _stable_attr(modal, COMPONENT_ID_ATTRIBUTE, settings) or _stable_attr(modal, "id", settings)
        if modal_id and node_attr(modal, COMPONENT_ID_ATTRIBUTE) == modal_id:
            selector = f'[{COMPONENT_ID_ATTRIBUTE}="{escape_css_string(modal_id)}"]'
        elif modal_id:
            selector = f'[id="{escape_css_string(modal_id)}"]'
        elif modal_title:
            selector = f'[data-component="modal"]:has-text("{escape_css_string(modal_title)}")'
        else:
            selector = None
        return ComponentAttributeConvention(
            component="modal",
            selector=selector,
            anchor=modal,
            component_id=modal_id,
            in_modal=True,
            modal_title=modal_title,
        )

    return None


def _is_component_button(node: HtmlElement) -> bool:
    if node_attr(node, "data-component") == "button":
        return True
    if "btn" in (node_attr(node, COMPONENT_ID_ATTRIBUTE) or ""):
        return True
    return _has_class_prefix(node, "n-button") or _has_class(node, "nxs-button")


def _is_component_input_wrapper(node: HtmlElement) -> bool:
    if node_attr(node, "data-component") == "input":
        return True
    return _has_class_prefix(node, "n-input") or _has_class(node, "nxs-input")


def _is_component_modal(node: HtmlElement) -> bool:
    if node_attr(node, "data-component") == "modal":
        return True
    if any(_has_class(node, token) for token in ("nxs-modal", "nexus-popup", "n-popup")):
        return True
    return _has_class_prefix(node, "n-modal")


def _is_component_table(node: HtmlElement) -> bool:
    if node_attr(node, "data-component") == "table":
        return True
    return _has_class_prefix(node, "n-table") or _has_class(node, "nxs-table")


def _modal_title(modal: HtmlElement) -> str | None:
    for item in iter_descendants(modal):
        if any("title" in token for token in node_classes(item)) or _has_class(item, "n-popup-header"):
            return node_text(item) or None
    return None


# -- frontend framework family ----------------------------------------------


def detect_frontend_framework(node: HtmlElement) -> FrontendFramework:
    root = node.getroottree().getroot()
    if node_attr(root, "ng-version") is not None or root.get("ng-app") is not None:
        return "angular"

    react = False
    vue = False
    for item in root.iter():
        if not isinstance(item.tag, str):
            continue
        for name in item.attrib:
            if name.startswith("ng-") or name.startswith("_ng"):
                return "angular"
            if name in ("data-reactroot", "data-react-root"):
                react = True
            elif name == "data-v-app" or name.startswith("data-v-"):
                vue = True
    if react:
        return "react"
    if vue:
        return "vue"
    return "unknown"


# -- helpers ----------------------------------------------------------------


def _has_class(node: HtmlElement, token: str) -> bool:
    return token in node_classes(node)


def _has_class_prefix(node: HtmlElement, prefix: str) -> bool:
    return any(token.startswith(prefix) for token in node_classes(node))


def _widget_root(node: HtmlElement, class_name: str) -> tuple[HtmlElement, str] | None:
    """Closest widget root carrying ``class_name``, else the closest carrying a class prefixed by it.

    Returns the element and the class token to address it with.
    """
    widget = closest(node, lambda item: _has_class(item, class_name))
    if widget is not None:
        return widget, class_name
    widget = closest(node, lambda item: _has_class_prefix(item, class_name))
    if widget is None:
        return None
    token = next(token for token in node_classes(widget) if token.startswith(class_name))
    return widget, token


def _stable_attr(node: HtmlElement, name: str, settings: SynthesisSettings | None) -> str | None:
    value = node_attr(node, name)
    if value and not is_volatile(value, settings):
        return value
    return None


def _id_or_class(node: HtmlElement, class_name: str, settings: SynthesisSettings | None) -> str:
    element_id = _stable_attr(node, "id", settings)
    if element_id:
        return f'.{class_name}[id="{escape_css_string(element_id)}"]'
    return f".{class_name}"


def _first_descendant(node: HtmlElement, tag: str) -> HtmlElement | None:
    for item in iter_descendants(node):
        if node_tag(item) == tag:
            return item
    return None


def _is_inside(node: HtmlElement, container: HtmlElement) -> bool:
    return closest(node, lambda item: item is container) is not None


def _ancestors_inclusive(node: HtmlElement) -> Iterable[HtmlElement]:
    current: HtmlElement | None = node
    while current is not None:
        yield current
        current = parent_element(current)
