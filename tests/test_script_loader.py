import json

import pytest

from script_loader import pick_next_script, split_sentences


def test_split_on_terminal_punctuation():
    assert split_sentences("The cat sat. Did it? Yes!") == ["The cat sat.", "Did it?", "Yes!"]


def test_abbreviations_do_not_split():
    text = "Mr. Smith met Dr. Jones on Main St. today."
    assert split_sentences(text) == [text]


def test_closing_quotes_stay_with_sentence():
    text = 'He said "Hi!" Then he left.'
    assert split_sentences(text) == ['He said "Hi!"', "Then he left."]


def test_unterminated_tail_is_a_sentence():
    assert split_sentences("First one. And then") == ["First one.", "And then"]
    assert split_sentences("no punctuation at all") == ["no punctuation at all"]


def test_whitespace_only_input():
    assert split_sentences("   \n ") == []
    assert split_sentences("One... two!!") == ["One...", "two!!"]


def _write_scripts(tmp_path, names):
    scripts = tmp_path / "scripts"
    scripts.mkdir()
    for name in names:
        (scripts / name).write_text(f"Text of {name}.\n", encoding="utf-8")
    (scripts / "notes.md").write_text("ignored", encoding="utf-8")
    return scripts


def test_pick_next_script_round_robin(tmp_path):
    scripts = _write_scripts(tmp_path, ["a.txt", "b.txt", "c.txt"])
    index = tmp_path / "index.json"

    seen = [pick_next_script(str(scripts), str(index))[0] for _ in range(3)]
    assert sorted(seen) == ["a.txt", "b.txt", "c.txt"]

    # next cycle repeats the stored order
    again = [pick_next_script(str(scripts), str(index))[0] for _ in range(3)]
    assert again == seen


def test_pick_next_script_returns_text(tmp_path):
    scripts = _write_scripts(tmp_path, ["only.txt"])
    name, text = pick_next_script(str(scripts), str(tmp_path / "index.json"))
    assert name == "only.txt"
    assert text == "Text of only.txt."


def test_pick_next_script_recovers_from_bad_index(tmp_path):
    scripts = _write_scripts(tmp_path, ["a.txt", "b.txt"])
    index = tmp_path / "index.json"
    index.write_text("{not json", encoding="utf-8")
    name, _ = pick_next_script(str(scripts), str(index))
    assert name in ("a.txt", "b.txt")
    stored = json.loads(index.read_text(encoding="utf-8"))
    assert stored["pos"] == 1
    assert sorted(stored["order"]) == [0, 1]


def test_pick_next_script_without_scripts(tmp_path):
    (tmp_path / "empty").mkdir()
    with pytest.raises(FileNotFoundError):
        pick_next_script(str(tmp_path / "empty"), str(tmp_path / "index.json"))


def test_decimal_points_do_not_split():
    text = "I bought 3.5 apples. They cost 2.25 dollars."
    assert split_sentences(text) == ["I bought 3.5 apples.", "They cost 2.25 dollars."]
    # a full stop after a number still ends the sentence
    assert split_sentences("Chapter 7. It begins.") == ["Chapter 7.", "It begins."]
