"""View selection state for the generated-exam result page."""

VIEW_TEST = "test"
VIEW_ANSWERS = "answers"
VIEW_MATRIX = "matrix"
VIEW_ANALYSIS = "analysis"

VIEWS = [
    {"id": VIEW_TEST, "name": "Toets (Student)"},
    {"id": VIEW_ANSWERS, "name": "Antwoordmodel"},
    {"id": VIEW_MATRIX, "name": "Matrix & Doelen"},
    {"id": VIEW_ANALYSIS, "name": "Analyse"},
]
VIEW_IDS = [view["id"] for view in VIEWS]

LAYOUT_TABBED = "tabbed"
LAYOUT_FULL = "full"
LAYOUTS = (LAYOUT_TABBED, LAYOUT_FULL)


class ResultView:
    """Which view and layout of a result is showing, and whether the export menu is open.

    Unknown values fall back to the student test in tabbed layout.
    """

    def __init__(self, view=VIEW_TEST, layout=LAYOUT_TABBED, menu_open=False):
        self.view = view if view in VIEW_IDS else VIEW_TEST
        self.layout = layout if layout in LAYOUTS else LAYOUT_TABBED
        self.menu_open = bool(menu_open)

    @classmethod
    def from_args(cls, args):
        """Build the state from request query arguments."""
        return cls(
            view=args.get("view", VIEW_TEST),
            layout=args.get("layout", LAYOUT_TABBED),
            menu_open=args.get("menu") == "1",
        )

    @property
    def is_full_document(self):
        return self.layout == LAYOUT_FULL

    def visible_views(self):
        """View ids to render, in document order."""
        if self.is_full_document:
            return list(VIEW_IDS)
        return [self.view]

    def select(self, view):
        return ResultView(view, self.layout, False)

    def toggle_layout(self):
        layout = LAYOUT_TABBED if self.is_full_document else LAYOUT_FULL
        return ResultView(self.view, layout, False)

    def toggle_menu(self):
        return ResultView(self.view, self.layout, not self.menu_open)

    def export_view(self):
        """View to export as text: None (whole document) in full layout."""
        return None if self.is_full_document else self.view

    def query_args(self):
        args = {"view": self.view, "layout": self.layout}
        if self.menu_open:
            args["menu"] = "1"
        return args
