"""
Phone number variants.

Brazilian mobile numbers exist with and without the leading 9 of the
subscriber number (55 + 2-digit area code + 8 or 9 digits). WhatsApp may
report either form for the same person, so lookups try both.
"""

BRAZIL_COUNTRY_CODE = "55"
MOBILE_PREFIX = "9"


def alternate_wa_id(wa_id: str) -> str | None:
    """
    Return the other Brazilian form of a WhatsApp id, or None.

    - 55 AA 9XXXXXXXX -> 55 AA XXXXXXXX
    - 55 AA XXXXXXXX  -> 55 AA 9XXXXXXXX
    """
    if not wa_id or not wa_id.startswith(BRAZIL_COUNTRY_CODE):
        return None

    area_code = wa_id[2:4]
    subscriber = wa_id[4:]

    if len(subscriber) == 9 and subscriber.startswith(MOBILE_PREFIX):
        return f"{BRAZIL_COUNTRY_CODE}{area_code}{subscriber[1:]}"

    if len(subscriber) == 8:
        return f"{BRAZIL_COUNTRY_CODE}{area_code}{MOBILE_PREFIX}{subscriber}"

    return None


def lookup_candidates(wa_id: str) -> list[str]:
    """Ids to try, in order: the exact id, then its alternate if any."""
    alternate = alternate_wa_id(wa_id)
    if alternate is None:
        return [wa_id]
    return [wa_id, alternate]
