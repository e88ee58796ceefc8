"""
Question-type catalog and the percentage allocation across selected types.
"""

QUESTION_TYPE_OPTIONS = [
    "Meerkeuze",
    "Open vraag / korte antwoord",
    "Invultekst / invuloefening",
    "Waar/Niet waar",
    "Matchen / koppelen",
    "Ordenen / sorteren",
    "Tekening / diagram maken",
    "Casus / contextvraag",
    "Redeneringsvraag / verklaring geven",
    "Simulatie / experiment / praktijkopdracht",
]

DEFAULT_ALLOCATION = [
    ("Meerkeuze", 50),
    ("Open vraag / korte antwoord", 50),
]

# Used when no question types are selected at all.
FALLBACK_DESCRIPTION = "Gevarieerd (Open en Gesloten vragen)"


class QuestionTypeAllocation:
    """Ordered, duplicate-free list of (question type, percentage) pairs.

    Every mutation is a silent no-op when it does not apply (unknown label,
    duplicate, exhausted catalog); the form just re-renders unchanged.
    """

    def __init__(self, entries=None, next_label=None):
        self.entries = []
        seed = DEFAULT_ALLOCATION if entries is None else entries
        for label, percent in seed:
            if label in QUESTION_TYPE_OPTIONS and not self.contains(label):
                self.entries.append((label, percent))
        self.next_label = next_label if next_label is not None else QUESTION_TYPE_OPTIONS[0]
        self.repair_pointer()

    @classmethod
    def from_form(cls, form):
        """Rebuild the allocation from parallel ``qtype_label`` / ``qtype_percent`` fields.

        Args:
            form: A werkzeug ``MultiDict`` (anything with ``getlist`` and ``get``).

        Returns:
            QuestionTypeAllocation
        """
        labels = form.getlist("qtype_label")
        percents = form.getlist("qtype_percent")
        entries = []
        for index, label in enumerate(labels):
            raw = percents[index] if index < len(percents) else "0"
            try:
                percent = max(0, min(int(float(raw)), 100))
            except (ValueError, TypeError):
                percent = 0
            entries.append((label, percent))
        return cls(entries, next_label=form.get("qtype_next") or None)

    def contains(self, label):
        return any(existing == label for existing, _ in self.entries)

    def labels(self):
        return [label for label, _ in self.entries]

    def available_labels(self):
        """Catalog entries that are not selected yet, in catalog order."""
        selected = set(self.labels())
        return [option for option in QUESTION_TYPE_OPTIONS if option not in selected]

    def repair_pointer(self):
        """Move the "next type to add" pointer to an available label.

        If the current pointer is still available it is kept. Otherwise it
        advances to the first available label, or becomes None when every
        catalog entry is already selected.
        """
        available = self.available_labels()
        if self.next_label in available:
            return self.next_label
        self.next_label = available[0] if available else None
        return self.next_label

    def add_type(self, label):
        if label not in QUESTION_TYPE_OPTIONS or self.contains(label):
            return
        if not self.available_labels():
            return
        self.entries.append((label, 0))
        self.repair_pointer()

    def remove_type(self, label):
        if not self.contains(label):
            return
        self.entries = [(existing, percent) for existing, percent in self.entries if existing != label]
        self.repair_pointer()

    def update_percent(self, label, value):
        if not self.contains(label):
            return
        self.entries = [
            (existing, value if existing == label else percent) for existing, percent in self.entries
        ]

    def total_percent(self):
        return sum(percent for _, percent in self.entries)

    def is_valid(self):
        return self.total_percent() == 100

    def is_empty(self):
        return not self.entries

    def describe(self):
        """Format the allocation for the generation prompt.

        Returns an empty string for an empty allocation;
        ``describe_question_types`` substitutes ``FALLBACK_DESCRIPTION`` then.
        """
        return ", ".join(f"{percent}% {label}" for label, percent in self.entries)

    def __len__(self):
        return len(self.entries)

    def __repr__(self):
        return f"QuestionTypeAllocation({self.entries!r})"
