"""Map country names (as clicked on the globe) to pre-rendered profile images."""
from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Dict, List, Optional, Union

PROFILE_BASE_URL = os.environ.get('SG_PROFILE_BASE_URL', '/country-profiles')

# Natural Earth abbreviations and alternate spellings -> profile file names.
COUNTRY_ALIASES: Dict[str, str] = {
    'United_States_of_America': 'United_States',
    'USA': 'United_States',
    'UK': 'United_Kingdom',
    'UAE': 'United_Arab_Emirates',
    'Democratic_Republic_of_Congo': 'Democratic_Republic_of_the_Congo',
    'Dem._Rep._Congo': 'Democratic_Republic_of_the_Congo',
    'Republic_of_the_Congo': 'Congo',
    'Central_African_Rep.': 'Central_African_Republic',
    'Côte_d\'Ivoire': 'Ivory_Coast',
    'CÃ´te_d\'Ivoire': 'Ivory_Coast',
    'Czech_Republic': 'Czechia',
    'Eq._Guinea': 'Equatorial_Guinea',
    'eSwatini': 'Eswatini',
    'Guinea-Bissau': 'Guinea_Bissau',
    'S._Sudan': 'South_Sudan',
}

REGIONS: Dict[str, List[str]] = {
    'Africa': [
        'Algeria', 'Angola', 'Benin', 'Botswana', 'Burundi', 'Cameroon',
        'Central_African_Republic', 'Chad', 'Comoros', 'Congo',
        'Democratic_Republic_of_the_Congo', 'Djibouti', 'Egypt',
        'Equatorial_Guinea', 'Eritrea', 'Eswatini', 'Ethiopia', 'Gabon',
        'Gambia', 'Ghana', 'Guinea', 'Guinea_Bissau', 'Ivory_Coast',
        'Kenya', 'Lesotho', 'Liberia', 'Libya', 'Madagascar', 'Malawi',
        'Mali', 'Mauritania', 'Mauritius', 'Morocco', 'Mozambique',
        'Namibia', 'Niger', 'Nigeria', 'Rwanda', 'Senegal',
        'Sierra_Leone', 'Somalia', 'South_Africa', 'South_Sudan',
        'Sudan', 'Tanzania', 'Togo', 'Tunisia', 'Uganda', 'Zambia', 'Zimbabwe',
    ],
}


def normalize_country_name(country_name: str) -> str:
    """Turn a display name into the profile file name stem.

    >>> normalize_country_name('United States of America')
    'United_States'
    """
    normalized = re.sub(r'\s+', '_', country_name)
    return COUNTRY_ALIASES.get(normalized, normalized)


def country_profile_path(country_name: str, base: str = PROFILE_BASE_URL) -> str:
    normalized = normalize_country_name(country_name)
    return f"{base.rstrip('/')}/country_profile_{normalized}.png"


def country_region(country_name: str) -> Optional[str]:
    normalized = normalize_country_name(country_name)
    for region, members in REGIONS.items():
        if normalized in members:
            return region
    return None


def has_country_profile(country_name: str, profile_dir: Optional[Union[str, Path]] = None) -> bool:
    normalized = normalize_country_name(country_name)
    if not normalized:
        return False
    if profile_dir is None:
        return True
    return (Path(profile_dir) / f'country_profile_{normalized}.png').is_file()
