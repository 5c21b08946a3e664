from functools import lru_cache
from pathlib import Path

from threatfeed.utils.hashing import sha256_text

PROMPT_DIR = Path(__file__).resolve().parent / "prompt_templates"

SUMMARY_PROMPT_VERSION = "summary_v1"


@lru_cache
def load_prompt(version: str) -> str:
    return (PROMPT_DIR / f"{version}.txt").read_text(encoding="utf-8").strip()


def prompt_checksum(version: str) -> str:
    return sha256_text(load_prompt(version))


SUMMARY_PROMPT = load_prompt(SUMMARY_PROMPT_VERSION)
SUMMARY_PROMPT_CHECKSUM = prompt_checksum(SUMMARY_PROMPT_VERSION)
