"""French administrative geography used to fill event location fields."""

from __future__ import annotations

import re
from typing import Final

DEPARTMENTS: Final[dict[str, str]] = {
    "01": "Ain",
    "02": "Aisne",
    "03": "Allier",
    "04": "Alpes-de-Haute-Provence",
    "05": "Hautes-Alpes",
    "06": "Alpes-Maritimes",
    "07": "Ardèche",
    "08": "Ardennes",
    "09": "Ariège",
    "10": "Aube",
    "11": "Aude",
    "12": "Aveyron",
    "13": "Bouches-du-Rhône",
    "14": "Calvados",
    "15": "Cantal",
    "16": "Charente",
    "17": "Charente-Maritime",
    "18": "Cher",
    "19": "Corrèze",
    "2A": "Corse-du-Sud",
    "2B": "Haute-Corse",
    "21": "Côte-d'Or",
    "22": "Côtes-d'Armor",
    "23": "Creuse",
    "24": "Dordogne",
    "25": "Doubs",
    "26": "Drôme",
    "27": "Eure",
    "28": "Eure-et-Loir",
    "29": "Finistère",
    "30": "Gard",
    "31": "Haute-Garonne",
    "32": "Gers",
    "33": "Gironde",
    "34": "Hérault",
    "35": "Ille-et-Vilaine",
    "36": "Indre",
    "37": "Indre-et-Loire",
    "38": "Isère",
    "39": "Jura",
    "40": "Landes",
    "41": "Loir-et-Cher",
    "42": "Loire",
    "43": "Haute-Loire",
    "44": "Loire-Atlantique",
    "45": "Loiret",
    "46": "Lot",
    "47": "Lot-et-Garonne",
    "48": "Lozère",
    "49": "Maine-et-Loire",
    "50": "Manche",
    "51": "Marne",
    "52": "Haute-Marne",
    "53": "Mayenne",
    "54": "Meurthe-et-Moselle",
    "55": "Meuse",
    "56": "Morbihan",
    "57": "Moselle",
    "58": "Nièvre",
    "59": "Nord",
    "60": "Oise",
    "61": "Orne",
    "62": "Pas-de-Calais",
    "63": "Puy-de-Dôme",
    "64": "Pyrénées-Atlantiques",
    "65": "Hautes-Pyrénées",
    "66": "Pyrénées-Orientales",
    "67": "Bas-Rhin",
    "68": "Haut-Rhin",
    "69": "Rhône",
    "70": "Haute-Saône",
    "71": "Saône-et-Loire",
    "72": "Sarthe",
    "73": "Savoie",
    "74": "Haute-Savoie",
    "75": "Paris",
    "76": "Seine-Maritime",
    "77": "Seine-et-Marne",
    "78": "Yvelines",
    "79": "Deux-Sèvres",
    "80": "Somme",
    "81": "Tarn",
    "82": "Tarn-et-Garonne",
    "83": "Var",
    "84": "Vaucluse",
    "85": "Vendée",
    "86": "Vienne",
    "87": "Haute-Vienne",
    "88": "Vosges",
    "89": "Yonne",
    "90": "Territoire de Belfort",
    "91": "Essonne",
    "92": "Hauts-de-Seine",
    "93": "Seine-Saint-Denis",
    "94": "Val-de-Marne",
    "95": "Val-d'Oise",
    "971": "Guadeloupe",
    "972": "Martinique",
    "973": "Guyane",
    "974": "La Réunion",
    "976": "Mayotte",
}

DEPARTMENT_CODES: Final[dict[str, str]] = {name: code for code, name in DEPARTMENTS.items()}

REGION_CODES: Final[dict[str, str]] = {
    "Auvergne-Rhône-Alpes": "ARA",
    "Bourgogne-Franche-Comté": "BFC",
    "Bretagne": "BRE",
    "Centre-Val de Loire": "CVL",
    "Corse": "COR",
    "Grand Est": "GES",
    "Hauts-de-France": "HDF",
    "Île-de-France": "IDF",
    "Normandie": "NOR",
    "Nouvelle-Aquitaine": "NAQ",
    "Occitanie": "OCC",
    "Pays de la Loire": "PDL",
    "Provence-Alpes-Côte d'Azur": "PAC",
    "Guadeloupe": "GUA",
    "Martinique": "MTQ",
    "Guyane": "GUY",
    "La Réunion": "REU",
    "Mayotte": "MAY",
}

COUNTRY_NAMES: Final[dict[str, str]] = {
    "FR": "France",
    "BE": "Belgique",
    "CH": "Suisse",
    "LU": "Luxembourg",
    "MC": "Monaco",
    "DE": "Allemagne",
    "ES": "Espagne",
    "IT": "Italie",
    "GB": "United Kingdom",
    "US": "United States",
}

_DEPARTMENT_CODE = re.compile(r"^(0?[1-9]|[1-8]\d|9[0-5]|2[AB]|97[1-6])$", re.IGNORECASE)


def normalize_department_code(code: str) -> str:
    """``"1"`` -> ``"01"``, ``"063"`` -> ``"63"``, ``"2a"`` -> ``"2A"``."""

    upper = code.upper()
    if upper in {"2A", "2B"} or (len(code) == 3 and code.startswith("97")):
        return upper
    if len(code) == 3 and code.startswith("0"):
        return code[1:]
    if len(code) == 1:
        return "0" + code
    return code


def resolve_department(value: str | None) -> tuple[str, str]:
    """Resolve a department given by code or name into ``(code, name)``.

    Unknown names resolve to ``("", "")``.
    """

    if not value:
        return "", ""
    trimmed = value.strip()
    if _DEPARTMENT_CODE.match(trimmed):
        code = normalize_department_code(trimmed)
        return code, DEPARTMENTS.get(code, "")
    code = DEPARTMENT_CODES.get(trimmed, "")
    return code, trimmed if code else ""


def region_code(region_name: str | None) -> str:
    if not region_name:
        return ""
    return REGION_CODES.get(region_name, "")


def country_name(country: str) -> str:
    return COUNTRY_NAMES.get(country, country)


def build_full_address(city: str, department: str, country: str) -> str:
    return ", ".join(part for part in (city, department, country_name(country)) if part)
