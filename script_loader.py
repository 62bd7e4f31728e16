import os
import json
import random
import re
import logging
from contextlib import suppress
from typing import List, Tuple

logger = logging.getLogger(__name__)

SCRIPTS_DIR = "scripts"
INDEX_FILE  = "script_index.json"

ABBREVIATIONS = ("Mr", "Mrs", "Ms", "Dr", "Prof", "Sr", "Jr", "St")
_PLACEHOLDER = "###"
_DECIMAL_POINT = re.compile(r"(?<=\d)\.(?=\d)")
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+['\"”’)]*")


def split_sentences(text: str) -> List[str]:
    """
    Split a block of text into sentences on ./!/? runs, keeping trailing
    closing quotes or brackets. Common title abbreviations and decimal
    points do not end a sentence.
    """
    protected = _DECIMAL_POINT.sub(_PLACEHOLDER, text)
    for abbr in ABBREVIATIONS:
        protected = re.sub(rf"\b({abbr})\.", rf"\1{_PLACEHOLDER}", protected)

    matches = _SENTENCE_RE.findall(protected)
    tail = _SENTENCE_RE.sub("", protected)
    if not matches:
        matches = [protected]
    elif re.search(r"\w", tail):
        # trailing text without terminal punctuation is its own sentence
        matches.append(tail)

    sentences = (m.replace(_PLACEHOLDER, ".").strip() for m in matches)
    return [s for s in sentences if s]


def pick_next_script(scripts_dir: str = SCRIPTS_DIR, index_file: str = INDEX_FILE) -> Tuple[str, str]:
    """
    Round‐robin + shuffle picker from scripts/*.txt.
    Returns (filename, text).
    """
    files = sorted(
        f for f in os.listdir(scripts_dir)
        if f.lower().endswith(".txt")
    )
    if not files:
        raise FileNotFoundError(f"no .txt scripts in '{scripts_dir}'")

    idx = {"pos": 0, "order": []}
    if os.path.exists(index_file):
        with suppress(OSError, ValueError):
            with open(index_file, "r", encoding="utf-8") as fh:
                loaded = json.load(fh)
            if isinstance(loaded, dict):
                idx = loaded

    # If script set changed, reshuffle
    order = idx.get("order", [])
    if len(order) != len(files) or not 0 <= int(idx.get("pos", 0)) < len(files):
        idx["order"] = list(range(len(files)))
        random.shuffle(idx["order"])
        idx["pos"] = 0

    i = idx["order"][idx["pos"]]
    idx["pos"] = (idx["pos"] + 1) % len(files)
    with open(index_file, "w", encoding="utf-8") as fh:
        json.dump(idx, fh, indent=2)

    path = os.path.join(scripts_dir, files[i])
    with open(path, "r", encoding="utf-8") as fh:
        text = fh.read().strip()
    logger.info("Loaded script %s", files[i])
    return files[i], text
