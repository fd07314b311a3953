import asyncio
import logging

import pytest

from subprobe.util.concurrency import ConcurrencyController
from subprobe.util.io import read_text_lines, write_csv
from subprobe.util.log import setup_logging


def test_read_text_lines_skips_comments_and_blanks(tmp_path):
    path = tmp_path / "domains.txt"
    path.write_text("\ufeffa.example.com\n\n# staging\n  b.example.com  \na.example.com\n",
                    encoding="utf-8")
    assert read_text_lines(path) == ["a.example.com", "b.example.com", "a.example.com"]


def test_read_text_lines_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_text_lines(tmp_path / "missing.txt")


def test_write_csv_without_columns_writes_nothing(tmp_path):
    write_csv(tmp_path / "x.csv", [])
    assert not (tmp_path / "x.csv").exists()


def test_setup_logging_does_not_stack_handlers(tmp_path):
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        setup_logging(tmp_path / "logs" / "run.log")
        setup_logging(tmp_path / "logs" / "run.log")
        assert len(root.handlers) == 2
        logging.getLogger("subprobe.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "| INFO     | subprobe.test | hello" in (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_controller_rejects_zero_width():
    with pytest.raises(ValueError):
        ConcurrencyController(0)


def test_controller_tracks_peak():
    async def go():
        controller = ConcurrencyController(3)

        async def hold():
            async with controller.acquire():
                await asyncio.sleep(0.01)

        await asyncio.gather(*(hold() for _ in range(10)))
        return controller

    controller = asyncio.run(go())
    assert controller.peak == 3
    assert controller.active == 0
