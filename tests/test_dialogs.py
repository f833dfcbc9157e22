import pytest
import typer

from tabtorrent.cli import dialogs


def _answer(monkeypatch, value):
    def fake_prompt(text, default="", show_default=True):
        if isinstance(value, BaseException):
            raise value
        return value

    monkeypatch.setattr(dialogs.typer, "prompt", fake_prompt)


@pytest.mark.asyncio
async def test_pick_directory_returns_absolute_path(monkeypatch, tmp_path):
    _answer(monkeypatch, str(tmp_path))

    assert await dialogs.pick_directory() == str(tmp_path.resolve())


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["", "   ", typer.Abort()])
async def test_pick_directory_dismissed(monkeypatch, answer):
    _answer(monkeypatch, answer)

    assert await dialogs.pick_directory() is None


@pytest.mark.asyncio
async def test_pick_directory_rejects_missing_folder(monkeypatch, tmp_path):
    _answer(monkeypatch, str(tmp_path / "nope"))

    assert await dialogs.pick_directory() is None


@pytest.mark.asyncio
async def test_pick_file_filters_by_suffix(monkeypatch, tmp_path):
    torrent = tmp_path / "debian.torrent"
    torrent.write_bytes(b"d4:infod")
    other = tmp_path / "notes.txt"
    other.write_text("x")

    _answer(monkeypatch, str(torrent))
    assert await dialogs.pick_file() == str(torrent.resolve())

    _answer(monkeypatch, str(other))
    assert await dialogs.pick_file() is None
