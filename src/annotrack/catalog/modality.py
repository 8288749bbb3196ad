"""
X-ray modality detection from project titles.

Rules are an ordered table of (modality, keywords) pairs. A title is matched
case-insensitively by substring against each rule's keywords in table order;
the first match wins and titles matching nothing fall back to the default.
"""

from collections.abc import Iterable, Sequence

from annotrack.exceptions import InvalidModalityError

__all__ = [
    "DEFAULT_MODALITY",
    "DEFAULT_MODALITY_RULES",
    "MODALITIES",
    "REPORTED_MODALITIES",
    "ModalityClassifier",
    "detect_xray_type",
    "validate_modality",
]

DEFAULT_MODALITY = "Others"

DEFAULT_MODALITY_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("OPG", ("opg", "dr. trupal", "dr.nimesh", "dr. mamta", "dr mamta", "dr trupal", "dr nimesh")),
    ("Bitewing", ("bitewing",)),
    ("IOPA", ("iopa", "full dataset", "full-dataset", "preprocessing", "pearl comparison", "pathology")),
)

# Closed set of modality tags a project can carry
MODALITIES: tuple[str, ...] = ("OPG", "Bitewing", "IOPA", DEFAULT_MODALITY)

# Modalities broken out in combined metrics reports
REPORTED_MODALITIES: tuple[str, ...] = ("OPG", "Bitewing", "IOPA")


class ModalityClassifier:
    """Keyword classifier mapping a project title to a modality tag."""

    def __init__(
        self,
        rules: Sequence[tuple[str, Iterable[str]]] = DEFAULT_MODALITY_RULES,
        default: str = DEFAULT_MODALITY,
    ) -> None:
        """Initialize the classifier.

        Args:
            rules: Ordered (modality, keywords) pairs; keywords are matched lowercased
            default: Modality returned when no keyword matches
        """
        self.rules = tuple((modality, tuple(k.lower() for k in keywords)) for modality, keywords in rules)
        self.default = default

    def classify(self, title: str | None) -> str:
        """Return the modality for a project title."""
        if not title:
            return self.default

        title_lower = title.lower()
        for modality, keywords in self.rules:
            for keyword in keywords:
                if keyword in title_lower:
                    return modality

        return self.default


_default_classifier = ModalityClassifier()


def detect_xray_type(title: str | None) -> str:
    """Detect the X-ray modality of a project from its title using the default rules."""
    return _default_classifier.classify(title)


def validate_modality(modality: str) -> str:
    """Validate a modality tag against the supported set.

    Raises:
        InvalidModalityError: If the modality is not supported
    """
    if modality not in MODALITIES:
        raise InvalidModalityError(f"Invalid modality. Must be one of: {', '.join(MODALITIES)}")
    return modality
