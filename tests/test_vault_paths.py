import pytest

from vault.paths import ensure_markdown_extension, folder_prefix, is_note_key, normalize_path


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("notes/today.md", "notes/today.md"),
        ("/notes/today.md", "notes/today.md"),
        ("  notes//daily///today.md ", "notes/daily/today.md"),
        ("", ""),
    ],
)
def test_normalize_path(raw, expected) -> None:
    assert normalize_path(raw) == expected


def test_ensure_markdown_extension() -> None:
    assert ensure_markdown_extension("notes/today") == "notes/today.md"
    assert ensure_markdown_extension("/notes/today.md") == "notes/today.md"


def test_folder_prefix() -> None:
    assert folder_prefix("") == ""
    assert folder_prefix("/") == ""
    assert folder_prefix("Projects") == "Projects/"
    assert folder_prefix("Projects/alpha/") == "Projects/alpha/"


def test_is_note_key() -> None:
    assert is_note_key("Inbox/todo.md")
    assert not is_note_key("attachments/image.png")
    assert not is_note_key("Inbox/")
