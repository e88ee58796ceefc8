"""
Taxonomy schemes and the percentage distribution model.

Defines the two cognitive classification schemes a teacher can build an exam
around (RTTI and KTI) and the mutable distribution that assigns a percentage
to every category of the active scheme. The distribution tolerates invalid
totals while the form is being edited; the configuration assembler refuses
to submit anything that does not add up to 100.
"""

from collections import namedtuple

SCHEME_RTTI = "RTTI"
SCHEME_KTI = "KTI"

TaxonomyScheme = namedtuple(
    "TaxonomyScheme",
    ["scheme_id", "name", "labels", "level_names", "defaults", "colors"],
)

RTTI = TaxonomyScheme(
    scheme_id=SCHEME_RTTI,
    name="RTTI",
    labels=("R", "T1", "T2", "I"),
    level_names={
        "R": "Reproductie",
        "T1": "Training 1",
        "T2": "Training 2",
        "I": "Inzicht",
    },
    defaults={"R": 25, "T1": 40, "T2": 25, "I": 10},
    colors={"R": "#3B82F6", "T1": "#10B981", "T2": "#F59E0B", "I": "#8B5CF6"},
)

KTI = TaxonomyScheme(
    scheme_id=SCHEME_KTI,
    name="KTI",
    labels=("K", "T", "I"),
    level_names={
        "K": "Kennis",
        "T": "Toepassen",
        "I": "Inzicht",
    },
    defaults={"K": 30, "T": 50, "I": 20},
    colors={"K": "#3B82F6", "T": "#10B981", "I": "#8B5CF6"},
)

SCHEMES = {SCHEME_RTTI: RTTI, SCHEME_KTI: KTI}

DEFAULT_SCHEME = SCHEME_RTTI


def get_scheme(scheme_id):
    """Return the scheme registered under ``scheme_id``, or None if unknown."""
    return SCHEMES.get(scheme_id)


def _parse_percent(raw):
    """Parse a submitted percentage, treating garbage as 0 and clamping to 0-100."""
    try:
        value = int(float(raw))
    except (ValueError, TypeError):
        return 0
    return max(0, min(value, 100))


class TaxonomyDistribution:
    """Percentage weights over the categories of one taxonomy scheme.

    The model does not clamp values; the form layer keeps input in the
    0-100 range before it gets here.
    """

    def __init__(self, scheme_id=DEFAULT_SCHEME, values=None):
        scheme = get_scheme(scheme_id)
        if scheme is None:
            raise ValueError(f"Unknown taxonomy scheme: {scheme_id}")
        self.scheme = scheme
        self.values = dict(scheme.defaults)
        if values:
            for label, percent in values.items():
                self.set_value(label, percent)

    @classmethod
    def from_form(cls, scheme_id, form):
        """Build a distribution from submitted form fields.

        Fields are named ``dist_<label>``. Labels missing from the form keep
        the scheme default; unknown schemes fall back to the default scheme.

        Args:
            scheme_id: Selected scheme id ("RTTI" or "KTI").
            form: Mapping of form field name to raw string value.

        Returns:
            TaxonomyDistribution
        """
        if get_scheme(scheme_id) is None:
            scheme_id = DEFAULT_SCHEME
        distribution = cls(scheme_id)
        for label in distribution.scheme.labels:
            raw = form.get(f"dist_{label}")
            if raw is not None:
                distribution.set_value(label, _parse_percent(raw))
        return distribution

    @property
    def scheme_id(self):
        return self.scheme.scheme_id

    def set_value(self, label, percent):
        """Replace the weight of one category of the active scheme."""
        if label not in self.scheme.labels:
            raise KeyError(f"'{label}' is not a category of {self.scheme_id}")
        self.values[label] = percent

    def total_percent(self):
        return sum(self.values[label] for label in self.scheme.labels)

    def is_valid(self):
        return self.total_percent() == 100

    def switch_scheme(self, scheme_id):
        """Replace the whole distribution with another scheme's defaults.

        Prior values are never carried over, even when labels overlap
        (both schemes have an "I" category).
        """
        scheme = get_scheme(scheme_id)
        if scheme is None:
            raise ValueError(f"Unknown taxonomy scheme: {scheme_id}")
        self.scheme = scheme
        self.values = dict(scheme.defaults)

    def as_dict(self):
        """Return an ordered label -> percent mapping for the active scheme."""
        return {label: self.values[label] for label in self.scheme.labels}

    def __repr__(self):
        return f"TaxonomyDistribution({self.scheme_id!r}, {self.as_dict()!r})"
