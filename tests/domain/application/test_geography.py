from __future__ import annotations

import pytest

from racecatalog.domain.application.geography import (
    build_full_address,
    country_name,
    normalize_department_code,
    region_code,
    resolve_department,
)


@pytest.mark.parametrize(
    ("code", "expected"),
    [("1", "01"), ("063", "63"), ("2a", "2A"), ("974", "974"), ("75", "75")],
)
def test_normalize_department_code(code: str, expected: str) -> None:
    assert normalize_department_code(code) == expected


def test_resolve_department_by_code_or_name() -> None:
    assert resolve_department("74") == ("74", "Haute-Savoie")
    assert resolve_department("1") == ("01", "Ain")
    assert resolve_department("Finistère") == ("29", "Finistère")


def test_resolve_department_unknown_values() -> None:
    assert resolve_department("Atlantis") == ("", "")
    assert resolve_department(None) == ("", "")
    assert resolve_department("") == ("", "")


def test_region_code() -> None:
    assert region_code("Auvergne-Rhône-Alpes") == "ARA"
    assert region_code("Île-de-France") == "IDF"
    assert region_code("Wallonie") == ""
    assert region_code(None) == ""


def test_full_address_spells_out_the_country() -> None:
    assert build_full_address("Annecy", "Haute-Savoie", "FR") == "Annecy, Haute-Savoie, France"
    assert build_full_address("Genève", "", "CH") == "Genève, Suisse"
    assert country_name("NZ") == "NZ"
