from typing import List, Optional

from dashboard.exceptions import InvalidInputError, WidgetNotInTabError
from dashboard.schemas.tab import Tab, Widget


def layout_ids(tab: Tab) -> List[List[int]]:
    """Return the tab layout as columns of widget ids"""
    return [[widget.id for widget in column] for column in tab.widgets]


def find_widget(tab: Tab, widget_id: int) -> Optional[Widget]:
    for column in tab.widgets:
        for widget in column:
            if widget.id == widget_id:
                return widget
    return None


def rearrange_layout(tab: Tab, layout: List[List[int]]) -> Tab:
    """
    Rebuild the tab columns following a new arrangement of its widget ids.

    The arrangement must be a permutation of the widgets currently in the
    tab: every id must be known and used exactly once.

    Args:
        tab: Tab with its widgets resolved
        layout: New columns of widget ids

    Returns:
        A copy of the tab with the widgets moved

    Raises:
        InvalidInputError: If an id is unknown, repeated, or a widget is left out
    """
    remaining = {}
    for column in tab.widgets:
        for widget in column:
            remaining[widget.id] = widget

    columns = []
    for column in layout:
        new_column = []
        for widget_id in column:
            widget = remaining.pop(widget_id, None)
            if widget is None:
                raise InvalidInputError(f"Unable to find widget {widget_id} in tab {tab.id}")
            new_column.append(widget)
        columns.append(new_column)

    if remaining:
        missing = ", ".join(str(widget_id) for widget_id in sorted(remaining))
        raise InvalidInputError(f"Not all widgets used in new layout (missing {missing})")

    return tab.model_copy(update={"widgets": columns})


def remove_widget(tab: Tab, widget_id: int) -> Tab:
    """
    Drop a single widget from the layout, keeping the order of the others.

    Raises:
        WidgetNotInTabError: If no column holds the widget
    """
    for i, column in enumerate(tab.widgets):
        for j, widget in enumerate(column):
            if widget.id == widget_id:
                columns = [list(c) for c in tab.widgets]
                del columns[i][j]
                return tab.model_copy(update={"widgets": columns})

    raise WidgetNotInTabError(tab.id, widget_id)


def append_widget(tab: Tab, widget: Widget) -> Tab:
    """Append a widget at the bottom of the first column, creating it if needed"""
    columns = [list(c) for c in tab.widgets]
    if not columns:
        columns = [[]]
    columns[0].append(widget)
    return tab.model_copy(update={"widgets": columns})
