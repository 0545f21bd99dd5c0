"""Tests for batch job building and the drain-to-completion runner."""

from unittest.mock import AsyncMock, patch

import pytest

from uri2pdf.batch import BatchSummary, build_jobs, convert_all, output_name, read_job_file, run_batch
from uri2pdf.errors import ConversionTimeout, SessionCreationError
from uri2pdf.events import Event, EventKind
from uri2pdf.models import ConverterConfig
from uri2pdf.queue import Job


class TestBuildJobs:
    def test_output_name_from_uri(self):
        assert output_name("https://example.com/docs/intro.html") == "example-com-docs-intro-html.pdf"
        assert output_name("https://example.com/", "png") == "example-com.png"
        assert output_name("file:///") == "page.pdf"

    def test_jobs_in_input_order(self):
        jobs = build_jobs(["https://a.test", "https://b.test"], output_dir="out")
        assert [j["uri"] for j in jobs] == ["https://a.test", "https://b.test"]
        assert jobs[0]["outfile"].endswith("a-test.pdf")
        assert jobs[0]["outfile"].startswith("out")

    def test_duplicate_names_are_suffixed(self):
        jobs = build_jobs(["https://a.test", "https://a.test"], output_dir="out")
        assert jobs[0]["outfile"] != jobs[1]["outfile"]
        assert jobs[1]["outfile"].endswith("a-test-2.pdf")

    def test_headers_attached_to_every_job(self):
        jobs = build_jobs(["https://a.test", "https://b.test"], headers={"X-Key": "1"})
        assert all(j["http"] == {"headers": {"X-Key": "1"}} for j in jobs)
        assert Job.coerce(jobs[0]).http_headers == {"X-Key": "1"}

    def test_explicit_outfile(self):
        jobs = build_jobs(["https://a.test"], outfile="report.pdf")
        assert jobs == [{"uri": "https://a.test", "outfile": "report.pdf"}]

    def test_outfile_with_many_uris_rejected(self):
        with pytest.raises(ValueError, match="single URI"):
            build_jobs(["https://a.test", "https://b.test"], outfile="report.pdf")

    def test_job_file_entries(self, tmp_path):
        path = tmp_path / "jobs.txt"
        path.write_text("# comment\nhttps://a.test\n\nhttps://b.test  custom/b.pdf\n")

        entries = read_job_file(str(path))
        assert entries == [("https://a.test", None), ("https://b.test", "custom/b.pdf")]

        jobs = build_jobs(entries, output_dir="out")
        assert jobs[1]["outfile"] == "custom/b.pdf"


class TestBatchSummary:
    def test_record(self):
        summary = BatchSummary(total=2)
        ok = Job(uri="https://a.test", outfile="a.pdf")
        slow = Job(uri="https://slow.test", outfile="slow.pdf")

        summary.record(Event(kind=EventKind.RENDER, options=ok))
        summary.record(Event(kind=EventKind.RENDER, options=slow, error=ConversionTimeout(slow.uri, 5)))

        assert summary.succeeded == 1
        assert summary.failed == 1
        assert summary.timeouts == 1
        assert summary.outputs == ["a.pdf"]
        assert summary.failures[0][0] == "https://slow.test"


class TestConvertAll:
    @pytest.mark.asyncio
    async def test_converts_every_job(self, engine):
        jobs = build_jobs(["https://a.test", "https://b.test", "https://c.test"], output_dir="out")

        summary = await convert_all(jobs, engine=engine, show_progress=False)

        assert summary.drained
        assert summary.succeeded == 3
        assert summary.failed == 0
        assert engine.rendered == [j["outfile"] for j in jobs]
        assert engine.closed

    @pytest.mark.asyncio
    async def test_failures_collected(self, engine):
        engine.open_behavior["https://bad.test"] = False
        engine.open_behavior["https://slow.test"] = "hang"
        jobs = build_jobs(["https://bad.test", "https://slow.test", "https://ok.test"])

        summary = await convert_all(
            jobs, ConverterConfig(max_delay_ms=10), engine=engine, show_progress=False
        )

        assert summary.succeeded == 1
        assert summary.failed == 2
        assert summary.timeouts == 1
        assert [uri for uri, _ in summary.failures] == ["https://bad.test", "https://slow.test"]

    @pytest.mark.asyncio
    async def test_browser_start_failure_releases_engine(self, engine):
        engine.create_error = SessionCreationError("chromium missing")

        with pytest.raises(SessionCreationError):
            await convert_all(build_jobs(["https://a.test"]), engine=engine, show_progress=False)

        assert engine.closed

    @pytest.mark.asyncio
    async def test_empty_batch(self, engine):
        summary = await convert_all([], engine=engine, show_progress=False)

        assert summary.drained
        assert summary.total == 0
        assert engine.sessions == []


class TestRunBatch:
    def test_passes_cli_options(self, tmp_path, capsys):
        uri_file = tmp_path / "uris.txt"
        uri_file.write_text("https://b.test\n")
        result = BatchSummary(total=2, succeeded=2, drained=True)

        with patch("uri2pdf.config.resolve_config", return_value=ConverterConfig()) as mock_resolve:
            with patch("uri2pdf.batch.convert_all", new=AsyncMock(return_value=result)) as mock_convert:
                summary = run_batch({
                    "uris": ["https://a.test"],
                    "from_file": str(uri_file),
                    "output": str(tmp_path),
                    "headers": {"X-Key": "1"},
                    "no_progress": True,
                })

        assert summary is result
        mock_resolve.assert_called_once()
        jobs = mock_convert.call_args.args[0]
        assert [j["uri"] for j in jobs] == ["https://a.test", "https://b.test"]
        assert jobs[0]["http"] == {"headers": {"X-Key": "1"}}
        assert mock_convert.call_args.kwargs["show_progress"] is False
        assert "CONVERSION SUMMARY" in capsys.readouterr().out

    def test_nothing_to_convert(self, capsys):
        with patch("uri2pdf.config.resolve_config", return_value=ConverterConfig()):
            with patch("uri2pdf.batch.convert_all") as mock_convert:
                summary = run_batch({"uris": []})

        mock_convert.assert_not_called()
        assert summary.total == 0
        assert "No URIs" in capsys.readouterr().out
