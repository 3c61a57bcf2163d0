"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest
from pypdf import PdfReader

import docmerge
from docmerge import InputItem
from docmerge.cli import _build_parser, main


class TestParser:
    def test_defaults(self):
        args = _build_parser().parse_args(["a.pdf"])

        assert args.sources == ["a.pdf"]
        assert args.output is None
        assert args.max_file_size == 5 * 1024 * 1024
        assert args.max_total_size == 20 * 1024 * 1024
        assert args.strict_types is False

    def test_sizes_in_megabytes(self):
        args = _build_parser().parse_args(["a.pdf", "--max-file-size", "1.5", "--max-total-size", "3"])

        assert args.max_file_size == int(1.5 * 1024 * 1024)
        assert args.max_total_size == 3 * 1024 * 1024

    def test_rejects_non_positive_size(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["a.pdf", "--max-file-size", "0"])

    def test_requires_a_source(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])


class TestMain:
    def test_merges_files(self, tmp_path: Path, make_pdf, make_png):
        pdf = tmp_path / "doc.pdf"
        pdf.write_bytes(make_pdf([(100, 100), (100, 100)]))
        png = tmp_path / "scan.png"
        png.write_bytes(make_png())
        out = tmp_path / "merged.pdf"

        main([str(pdf), str(png), "--output", str(out)])

        assert len(PdfReader(out).pages) == 3

    def test_error_exits_with_status_one(self, tmp_path: Path, capsys):
        bad = tmp_path / "bad.pdf"
        bad.write_bytes(b"garbage")

        with pytest.raises(SystemExit) as excinfo:
            main([str(bad), "--output", str(tmp_path / "out.pdf")])

        assert excinfo.value.code == 1
        assert "bad.pdf" in capsys.readouterr().err

    def test_missing_file_exits_with_status_one(self, tmp_path: Path):
        with pytest.raises(SystemExit) as excinfo:
            main([str(tmp_path / "nope.pdf"), "--output", str(tmp_path / "out.pdf")])

        assert excinfo.value.code == 1

    def test_strict_types_flag(self, tmp_path: Path, make_png):
        gif = tmp_path / "anim.gif"
        gif.write_bytes(make_png())

        with pytest.raises(SystemExit) as excinfo:
            main([str(gif), "--strict-types", "--output", str(tmp_path / "out.pdf")])

        assert excinfo.value.code == 1

    def test_url_source_merged(self, tmp_path: Path, make_png, monkeypatch):
        remote = InputItem("remote.png", "image/png", make_png(width=20, height=20))
        fetched = []

        async def _fake_fetch(urls, *, on_fetched=None, **kwargs):
            for _ in urls:
                on_fetched(remote)
                fetched.append(remote.name)
            return [remote for _ in urls]

        monkeypatch.setattr(docmerge, "fetch_inputs", _fake_fetch)
        out = tmp_path / "merged.pdf"

        main(["https://example.com/remote.png", "--output", str(out)])

        assert fetched == ["remote.png"]
        assert len(PdfReader(out).pages) == 1
