import pytest

from soilhue.classifier import MunsellClassifier
from soilhue.munsell import MUNSELL_CATALOG, MunsellColor


def test_catalog_entries():
    assert len(MUNSELL_CATALOG) == 15
    notations = [entry.notation for entry in MUNSELL_CATALOG]
    assert len(set(notations)) == 15
    for entry in MUNSELL_CATALOG:
        assert all(0.0 <= v <= 1.0 for v in entry.reference_rgb)
        assert entry.soil_classification
        assert entry.soil_description


def test_every_reference_color_classifies_as_itself():
    classifier = MunsellClassifier()
    for entry in MUNSELL_CATALOG:
        assert classifier.find_closest(*entry.reference_rgb) == entry


def test_classify_returns_soil_information():
    result = MunsellClassifier().classify(0.25, 0.20, 0.15)

    assert result.munsell_notation == "10YR 3/2"
    assert result.soil_classification == "Organic-mineral soil (Mollisols)"
    assert result.to_dict() == {
        "munsellNotation": "10YR 3/2",
        "soilClassification": "Organic-mineral soil (Mollisols)",
        "soilDescription": "Moderate to high organic matter content, typical of A horizons.",
    }


def test_nearest_neighbor():
    classifier = MunsellClassifier()
    assert classifier.classify(0.62, 0.31, 0.19).munsell_notation == "5YR 4/6"
    assert classifier.classify(0.0, 0.0, 0.0).munsell_notation == "10YR 2/1"
    assert classifier.classify(1.0, 1.0, 1.0).munsell_notation == "10YR 8/1"


def test_distances_are_euclidean():
    distances = MunsellClassifier().distances(0.10, 0.10, 0.10)
    assert distances[0] == 0.0
    assert distances[1] == pytest.approx((3 * 0.01) ** 0.5)


def test_ties_go_to_the_earlier_entry():
    dark = MunsellColor("A", "Dark", "Group A", "First", (0.25, 0.25, 0.25))
    light = MunsellColor("B", "Light", "Group B", "Second", (0.75, 0.75, 0.75))

    assert MunsellClassifier([dark, light]).find_closest(0.5, 0.5, 0.5) is dark
    assert MunsellClassifier([light, dark]).find_closest(0.5, 0.5, 0.5) is light


def test_empty_catalog_is_rejected():
    with pytest.raises(ValueError):
        MunsellClassifier([])
