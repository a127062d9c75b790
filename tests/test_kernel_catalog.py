"""
Tests for the repository catalog parser and the pacman search wrapper.
"""

import subprocess
import textwrap
from unittest.mock import MagicMock, patch

import pytest

from hostplane.core.models.host import CatalogSettings, HostConfig
from hostplane.core.services.host_probe import CommandError
from hostplane.core.services.kernel_catalog import (
    CatalogParser,
    ParserState,
    parse_catalog,
    search_installable_kernels,
)

SEARCH_OUTPUT = textwrap.dedent("""\
    core/linux 6.6.1.arch1-1 [installed]
        Description: The Linux kernel and modules
    core/linux-headers 6.6.1.arch1-1
        Description: Headers and scripts for building modules for the Linux kernel
    core/linux-docs 6.6.1.arch1-1
        Description: Documentation for the Linux kernel
""")


class TestParseCatalog:
    def test_single_kernel_from_mixed_output(self):
        entries = parse_catalog(SEARCH_OUTPUT)
        assert len(entries) == 1
        linux = entries[0]
        assert linux.package_name == "linux"
        assert linux.version == "6.6.1.arch1-1"
        assert linux.flavor == "main"
        assert linux.description == "The Linux kernel and modules"
        assert linux.repository == "core"
        assert linux.installed is True

    def test_headers_description_never_leaks(self):
        text = textwrap.dedent("""\
            core/linux-lts 6.1.60-1
            core/linux-lts-headers 6.1.60-1
                Description: Headers for linux-lts
        """)
        entries = parse_catalog(text)
        assert [e.package_name for e in entries] == ["linux-lts"]
        assert entries[0].description == ""

    def test_missing_description_keeps_entry(self):
        text = "extra/linux-zen 6.6.1.zen1-1\nextra/linux-rt 6.6.1.rt15-1\n    Description: Realtime kernel\n"
        entries = parse_catalog(text)
        assert [(e.package_name, e.description) for e in entries] == [
            ("linux-zen", ""),
            ("linux-rt", "Realtime kernel"),
        ]
        assert entries[0].flavor == "zen"
        assert entries[0].installed is False

    def test_malformed_header_is_skipped(self):
        text = "core/linux\n    Description: orphan\nextra/linux-lts 6.1.60-1\n"
        entries = parse_catalog(text)
        assert [e.package_name for e in entries] == ["linux-lts"]
        assert entries[0].description == ""

    def test_malformed_header_drops_pending(self):
        text = "core/linux 6.6.1\ncore/broken\n    Description: not for linux\n"
        entries = parse_catalog(text)
        assert entries[0].description == ""

    def test_stray_description_is_ignored(self):
        text = "    Description: nobody owns me\ncore/linux 6.6.1\n"
        entries = parse_catalog(text)
        assert entries[0].description == ""

    def test_second_description_is_ignored(self):
        text = "core/linux 6.6.1\n    Description: first\n    Description: second\n"
        assert parse_catalog(text)[0].description == "first"

    def test_colon_inside_description(self):
        text = "core/linux 6.6.1\n    Description: Kernel: the stable one\n"
        assert parse_catalog(text)[0].description == "Kernel: the stable one"

    def test_noise_lines_are_ignored(self):
        text = "warning: database file for 'testing' does not exist\ncore/linux 6.6.1\n\n    Description: ok\n"
        entries = parse_catalog(text)
        assert entries[0].description == "ok"

    def test_unknown_section_is_noise(self):
        text = "multilib/linux-foo 1.0\n    Description: x\n"
        assert parse_catalog(text) == []

    def test_custom_sections(self):
        text = "testing/linux 6.7.0\n    Description: next\n"
        entries = parse_catalog(text, sections=["testing"])
        assert entries[0].repository == "testing"
        assert entries[0].description == "next"

    def test_empty_input(self):
        assert parse_catalog("") == []


class TestParserState:
    def test_transitions(self):
        parser = CatalogParser()
        assert parser.state is ParserState.AWAITING_HEADER
        parser.feed("core/linux 6.6.1")
        assert parser.state is ParserState.AWAITING_DESCRIPTION_OR_HEADER
        assert parser.pending == "linux"
        parser.feed("    Description: The Linux kernel")
        assert parser.state is ParserState.AWAITING_HEADER
        assert parser.pending is None

    def test_excluded_header_resets(self):
        parser = CatalogParser()
        parser.feed("core/linux 6.6.1")
        parser.feed("core/linux-headers 6.6.1")
        assert parser.state is ParserState.AWAITING_HEADER
        assert parser.pending is None


class TestSearchInstallableKernels:
    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_success(self, mock_run):
        mock_run.return_value = MagicMock(returncode=0, stdout=SEARCH_OUTPUT, stderr="")
        entries = search_installable_kernels(HostConfig())
        assert [e.package_name for e in entries] == ["linux"]
        assert mock_run.call_args.args[0] == ["pacman", "-Ss", "^linux"]

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_no_match_is_empty(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="")
        assert search_installable_kernels(HostConfig()) == []

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_other_failure_raises(self, mock_run):
        mock_run.return_value = MagicMock(returncode=2, stdout="", stderr="error: could not lock database")
        with pytest.raises(CommandError, match="could not lock database"):
            search_installable_kernels(HostConfig())

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_missing_pacman(self, mock_run):
        mock_run.side_effect = FileNotFoundError("pacman")
        with pytest.raises(CommandError, match="failed to execute"):
            search_installable_kernels(HostConfig())

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_timeout(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="pacman", timeout=30)
        with pytest.raises(CommandError, match="timed out"):
            search_installable_kernels(HostConfig())

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_configured_pattern(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="")
        host = HostConfig(catalog=CatalogSettings(search_pattern="^linux-lts"))
        search_installable_kernels(host)
        assert mock_run.call_args.args[0][-1] == "^linux-lts"

    @patch("hostplane.core.services.kernel_catalog.subprocess.run")
    def test_output_decoded_leniently(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1, stdout="", stderr="")
        search_installable_kernels(HostConfig())
        assert mock_run.call_args.kwargs["errors"] == "replace"
