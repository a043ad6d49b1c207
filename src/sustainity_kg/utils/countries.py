"""Country normalization against a fixed code table."""

from __future__ import annotations

from typing import Final

import pycountry

from ..errors import ConfigError

# Wikidata country items mapped to ISO 3166-1 alpha-2 codes
WIKIDATA_COUNTRIES: Final[dict[str, str]] = {
    "Q16": "CA",
    "Q17": "JP",
    "Q20": "NO",
    "Q27": "IE",
    "Q28": "HU",
    "Q29": "ES",
    "Q30": "US",
    "Q31": "BE",
    "Q32": "LU",
    "Q33": "FI",
    "Q34": "SE",
    "Q35": "DK",
    "Q36": "PL",
    "Q37": "LT",
    "Q38": "IT",
    "Q39": "CH",
    "Q40": "AT",
    "Q41": "GR",
    "Q43": "TR",
    "Q45": "PT",
    "Q55": "NL",
    "Q79": "EG",
    "Q96": "MX",
    "Q142": "FR",
    "Q145": "GB",
    "Q148": "CN",
    "Q155": "BR",
    "Q159": "RU",
    "Q183": "DE",
    "Q189": "IS",
    "Q191": "EE",
    "Q211": "LV",
    "Q212": "UA",
    "Q213": "CZ",
    "Q214": "SK",
    "Q215": "SI",
    "Q218": "RO",
    "Q219": "BG",
    "Q224": "HR",
    "Q229": "CY",
    "Q233": "MT",
    "Q252": "ID",
    "Q258": "ZA",
    "Q298": "CL",
    "Q334": "SG",
    "Q347": "LI",
    "Q408": "AU",
    "Q414": "AR",
    "Q664": "NZ",
    "Q668": "IN",
    "Q801": "IL",
    "Q833": "MY",
    "Q851": "SA",
    "Q865": "TW",
    "Q869": "TH",
    "Q878": "AE",
    "Q881": "VN",
    "Q884": "KR",
    "Q928": "PH",
    "Q8646": "HK",
}


def lookup_iso_code(code: str) -> str | None:
    """Return the alpha-2 code for an ISO alpha-2 or alpha-3 string."""
    code = code.strip().upper()
    if len(code) == 2:
        country = pycountry.countries.get(alpha_2=code)
    elif len(code) == 3:
        country = pycountry.countries.get(alpha_3=code)
    else:
        return None
    return country.alpha_2 if country is not None else None


class CountryTable:
    """Fixed Wikidata-to-ISO table, optionally extended from configuration."""

    def __init__(self, extra: dict[str, str] | None = None):
        self._codes = dict(WIKIDATA_COUNTRIES)
        for entity_id, code in (extra or {}).items():
            iso = lookup_iso_code(code)
            if iso is None:
                raise ConfigError(f"Unknown country code {code!r} for {entity_id}")
            self._codes[entity_id] = iso

    def normalize(self, value: str, entity_id: str | None = None) -> str | None:
        """
        Normalize a country claim.

        Args:
            value: Textual claim value
            entity_id: Referenced Wikidata item, if the claim is an item

        Returns:
            ISO 3166-1 alpha-2 code or None if the country is unknown
        """
        if entity_id is not None:
            return self._codes.get(entity_id)
        if not value:
            return None
        return lookup_iso_code(value)

    def __len__(self) -> int:
        return len(self._codes)
