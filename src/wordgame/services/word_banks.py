"""Static catalog of the word banks the game ships with."""
from typing import List

from wordgame.models.progress_models import BankInfo

DEFAULT_BANK = "words.txt"

# Declared sizes, maintained by hand alongside the bank files
BANK_CATALOG = {
    "words.txt": ("My word bank (3500 words)", 3500),
    "words_basic.txt": ("Basic vocabulary", 100),
    "words_intermediate.txt": ("Intermediate vocabulary", 200),
    "words_advanced.txt": ("Advanced vocabulary", 300),
    "words_exam.txt": ("Exam essentials", 500),
    "words_custom.txt": ("Custom bank", 0),
    "all": ("All words", 4100),
}

UNKNOWN_BANK_NAME = "Unknown bank"


def resolve_bank(bank_id: str) -> BankInfo:
    """Look up a bank; unknown identifiers resolve to an empty placeholder."""
    name, count = BANK_CATALOG.get(bank_id, (UNKNOWN_BANK_NAME, 0))
    return BankInfo(bank_id=bank_id, name=name, count=count)


def list_banks() -> List[BankInfo]:
    """List every known bank in catalog order."""
    return [resolve_bank(bank_id) for bank_id in BANK_CATALOG]


def is_known_bank(bank_id: str) -> bool:
    return bank_id in BANK_CATALOG
