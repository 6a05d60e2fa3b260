"""Tests for the command-line entry point."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from conftest import FakeAdapter, clinical_record
from dependency_injector import providers

from literature_aggregator.__main__ import build_parser, main
from literature_aggregator.application.search import ProviderSpec
from literature_aggregator.container import ApplicationContainer


@pytest.fixture
def fake_container():
    container = ApplicationContainer()
    container.config.from_dict({"email": "cli@example.org"})
    adapter = FakeAdapter("fake", [clinical_record(i, doi=f"10.1/cli.{i}") for i in range(6)])
    container.provider_specs.override(providers.Object([ProviderSpec(adapter)]))
    with patch("literature_aggregator.__main__.from_env", return_value=container):
        yield container


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["statins and stroke"])
        assert args.query == "statins and stroke"
        assert args.target_count is None
        assert args.disable == []

    def test_repeatable_disable(self):
        args = build_parser().parse_args(["q", "--disable", "openfda", "--disable", "crossref", "-n", "3"])
        assert args.disable == ["openfda", "crossref"]
        assert args.target_count == 3


class TestMain:
    def test_prints_result_json(self, fake_container, capsys):
        exit_code = main(["omega-3 and depression", "-n", "4"])

        assert exit_code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["query"] == "omega-3 and depression"
        assert len(output["results"]) == 4
        assert output["diagnostics"]["providers_queried"] == ["fake"]

    def test_blank_query_is_usage_error(self, fake_container, capsys):
        assert main(["   "]) == 2
        assert json.loads(capsys.readouterr().out)["category"] == "validation"

    def test_invalid_target_count(self, fake_container, capsys):
        assert main(["omega-3 and depression", "-n", "0"]) == 2
        assert "target_count" in json.loads(capsys.readouterr().out)["error"]

    def test_disable_flag_skips_provider(self, fake_container, capsys):
        assert main(["omega-3 and depression", "--disable", "fake"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert output["results"] == []
        assert output["diagnostics"]["empty_reason"] == "no_provider_results"

    def test_invalid_timeout_is_configuration_error(self, fake_container, capsys):
        assert main(["omega-3 and depression", "--timeout", "0"]) == 1
        assert json.loads(capsys.readouterr().out)["category"] == "config"
