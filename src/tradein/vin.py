from __future__ import annotations

import re


VIN_PATTERN = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")

# 10th VIN character -> model year, for the 2001-2030 cycle.
_YEAR_CODE_MAP = {
    "1": 2001,
    "2": 2002,
    "3": 2003,
    "4": 2004,
    "5": 2005,
    "6": 2006,
    "7": 2007,
    "8": 2008,
    "9": 2009,
    "A": 2010,
    "B": 2011,
    "C": 2012,
    "D": 2013,
    "E": 2014,
    "F": 2015,
    "G": 2016,
    "H": 2017,
    "J": 2018,
    "K": 2019,
    "L": 2020,
    "M": 2021,
    "N": 2022,
    "P": 2023,
    "R": 2024,
    "S": 2025,
    "T": 2026,
    "V": 2027,
    "W": 2028,
    "X": 2029,
    "Y": 2030,
}


def normalize_vin(vin: str | None) -> str:
    return (vin or "").strip().upper()


def is_valid_vin(vin: str | None) -> bool:
    return bool(VIN_PATTERN.match(normalize_vin(vin)))


def model_year_from_vin(vin: str) -> int | None:
    vin = normalize_vin(vin)
    if len(vin) < 10:
        return None
    return _YEAR_CODE_MAP.get(vin[9])
