"""Ship's library computer: UWP decoding, trade codes, starports, glossary."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# Extended hex digits used by UWP strings (I and O are skipped)
_EHEX = "0123456789ABCDEFGHJKLMNPQRSTUVWXYZ"
_UWP = re.compile(r"^([A-EXa-ex])([0-9A-Za-z])([0-9A-Za-z])([0-9A-Za-z])([0-9A-Za-z])([0-9A-Za-z])([0-9A-Za-z])-([0-9A-Za-z])$")

STARPORTS: Dict[str, Dict[str, str]] = {
    "A": {"quality": "Excellent", "fuel": "Refined", "facilities": "Shipyard (all), repair"},
    "B": {"quality": "Good", "fuel": "Refined", "facilities": "Shipyard (spacecraft), repair"},
    "C": {"quality": "Routine", "fuel": "Unrefined", "facilities": "Shipyard (small craft), repair"},
    "D": {"quality": "Poor", "fuel": "Unrefined", "facilities": "Limited repair"},
    "E": {"quality": "Frontier", "fuel": "None", "facilities": "None"},
    "X": {"quality": "No starport", "fuel": "None", "facilities": "None"},
}

SIZES = {
    0: "Asteroid/planetoid belt", 1: "1,600 km", 2: "3,200 km", 3: "4,800 km",
    4: "6,400 km", 5: "8,000 km", 6: "9,600 km", 7: "11,200 km", 8: "12,800 km",
    9: "14,400 km", 10: "16,000 km",
}

ATMOSPHERES = {
    0: "None", 1: "Trace", 2: "Very thin, tainted", 3: "Very thin", 4: "Thin, tainted",
    5: "Thin", 6: "Standard", 7: "Standard, tainted", 8: "Dense", 9: "Dense, tainted",
    10: "Exotic", 11: "Corrosive", 12: "Insidious", 13: "Very dense", 14: "Low", 15: "Unusual",
}

HYDROGRAPHICS = {
    0: "0-5% (desert)", 1: "6-15% (dry)", 2: "16-25%", 3: "26-35%", 4: "36-45%", 5: "46-55%",
    6: "56-65%", 7: "66-75%", 8: "76-85% (wet)", 9: "86-95%", 10: "96-100% (water world)",
}

GOVERNMENTS = {
    0: "None", 1: "Company/corporation", 2: "Participating democracy", 3: "Self-perpetuating oligarchy",
    4: "Representative democracy", 5: "Feudal technocracy", 6: "Captive government",
    7: "Balkanisation", 8: "Civil service bureaucracy", 9: "Impersonal bureaucracy",
    10: "Charismatic dictator", 11: "Non-charismatic leader", 12: "Charismatic oligarchy",
    13: "Religious dictatorship", 14: "Religious autocracy", 15: "Totalitarian oligarchy",
}

TRADE_CODES: Dict[str, str] = {
    "Ag": "Agricultural",
    "As": "Asteroid",
    "Ba": "Barren",
    "De": "Desert",
    "Fl": "Fluid oceans",
    "Ga": "Garden",
    "Hi": "High population",
    "Ht": "High technology",
    "Ic": "Ice-capped",
    "In": "Industrial",
    "Lo": "Low population",
    "Lt": "Low technology",
    "Na": "Non-agricultural",
    "Ni": "Non-industrial",
    "Po": "Poor",
    "Ri": "Rich",
    "Va": "Vacuum",
    "Wa": "Water world",
}

GLOSSARY: Dict[str, str] = {
    "UWP": "Universal World Profile: starport, size, atmosphere, hydrographics, population, government, law level and tech level.",
    "Jump drive": "Faster-than-light drive; a jump takes about one week regardless of distance.",
    "Parsec": "Distance unit for jumps; one hex on a sector map.",
    "Refined fuel": "Hydrogen processed for safe jumps; available at class A and B starports.",
    "Unrefined fuel": "Raw hydrogen skimmed from gas giants or water; using it adds DM-2 to jump checks.",
    "Misjump": "A failed jump that arrives somewhere unexpected.",
    "Range band": "Ordinal distance category used in space combat (Adjacent to Distant).",
    "ROE": "Rules of engagement set by the captain: weapons free, hold or defensive.",
    "Evasive action": "Pilot manoeuvring that imposes DM-2 on attacks against the ship.",
    "Imperial date": "Year and day of year, written YYYY-DDD.",
}


def _ehex(char: str) -> int:
    return _EHEX.index(char.upper())


def trade_codes_for(size: int, atmo: int, hydro: int, pop: int, gov: int, law: int, tech: int) -> List[str]:
    codes = []
    if 4 <= atmo <= 9 and 4 <= hydro <= 8 and 5 <= pop <= 7:
        codes.append("Ag")
    if size == 0 and atmo == 0 and hydro == 0:
        codes.append("As")
    if pop == 0 and gov == 0 and law == 0:
        codes.append("Ba")
    if atmo >= 2 and hydro == 0:
        codes.append("De")
    if atmo >= 10 and hydro >= 1:
        codes.append("Fl")
    if 6 <= size <= 8 and atmo in (5, 6, 8) and 5 <= hydro <= 7:
        codes.append("Ga")
    if pop >= 9:
        codes.append("Hi")
    if tech >= 12:
        codes.append("Ht")
    if atmo <= 1 and hydro >= 1:
        codes.append("Ic")
    if atmo in (0, 1, 2, 4, 7, 9) and pop >= 9:
        codes.append("In")
    if 1 <= pop <= 3:
        codes.append("Lo")
    if 1 <= pop and tech <= 5:
        codes.append("Lt")
    if atmo <= 3 and hydro <= 3 and pop >= 6:
        codes.append("Na")
    if 4 <= pop <= 6:
        codes.append("Ni")
    if 2 <= atmo <= 5 and hydro <= 3:
        codes.append("Po")
    if atmo in (6, 8) and 6 <= pop <= 8:
        codes.append("Ri")
    if atmo == 0:
        codes.append("Va")
    if hydro >= 10:
        codes.append("Wa")
    return codes


class Library:
    """Static reference data with a simple substring search."""

    def decode_uwp(self, uwp: str) -> Optional[Dict[str, Any]]:
        match = _UWP.match(uwp.strip())
        if not match:
            return None
        try:
            port = match.group(1).upper()
            size, atmo, hydro, pop, gov, law, tech = (_ehex(match.group(i)) for i in range(2, 9))
        except ValueError:
            return None
        return {
            "starport": {"code": port, **STARPORTS[port]},
            "size": {"code": size, "description": SIZES.get(size, "Large world")},
            "atmosphere": {"code": atmo, "description": ATMOSPHERES.get(atmo, "Unknown")},
            "hydrographics": {"code": hydro, "description": HYDROGRAPHICS.get(hydro, "Unknown")},
            "population": {"code": pop, "description": f"~10^{pop} inhabitants" if pop else "Uninhabited"},
            "government": {"code": gov, "description": GOVERNMENTS.get(gov, "Other")},
            "lawLevel": {"code": law},
            "techLevel": {"code": tech},
            "tradeCodes": trade_codes_for(size, atmo, hydro, pop, gov, law, tech),
        }

    def trade_codes(self) -> List[Dict[str, str]]:
        return [{"code": code, "name": name} for code, name in TRADE_CODES.items()]

    def starports(self) -> List[Dict[str, str]]:
        return [{"code": code, **info} for code, info in STARPORTS.items()]

    def glossary(self) -> List[Dict[str, str]]:
        return [{"term": term, "definition": text} for term, text in GLOSSARY.items()]

    def search(self, query: str) -> List[Dict[str, Any]]:
        needle = query.strip().lower()
        if not needle:
            return []
        results: List[Dict[str, Any]] = []
        for term, text in GLOSSARY.items():
            if needle in term.lower() or needle in text.lower():
                results.append({"type": "glossary", "title": term, "summary": text})
        for code, name in TRADE_CODES.items():
            if needle == code.lower() or needle in name.lower():
                results.append({"type": "tradeCode", "title": f"{code}: {name}", "summary": name})
        for code, info in STARPORTS.items():
            if needle == f"class {code.lower()}" or needle in info["quality"].lower():
                results.append({"type": "starport", "title": f"Class {code} starport", "summary": info["facilities"]})
        decoded = self.decode_uwp(query)
        if decoded is not None:
            results.insert(0, {"type": "uwp", "title": query.strip().upper(), "summary": decoded})
        return results
