"""
merklerewards/tests/test_cli.py

Tests for the merklerewards command line.
"""

import json

import pytest
from click.testing import CliRunner

from merklerewards.blockchain.merkle import hash_leaf
from merklerewards.cli import main

from merkle_helpers import addr, build_distribution


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def dist_data():
    return build_distribution({
        addr(1): (addr(101), 100),
        addr(2): (addr(102), 200),
    })


@pytest.fixture
def dist_file(tmp_path, dist_data):
    path = tmp_path / "MerkleDist.json"
    path.write_text(json.dumps(dist_data))
    return str(path)


class TestLeafCommand:

    def test_prints_leaf(self, runner):
        result = runner.invoke(main, ["leaf", addr(1), addr(2), "1000"])
        assert result.exit_code == 0
        assert result.output.strip() == hash_leaf(addr(1), addr(2), 1000)

    def test_bad_address(self, runner):
        result = runner.invoke(main, ["leaf", "0x1234", addr(2), "1000"])
        assert result.exit_code == 2

    def test_amount_out_of_range(self, runner):
        result = runner.invoke(main, ["leaf", addr(1), addr(2), str(2 ** 256)])
        assert result.exit_code == 2


class TestVerifyCommand:

    def test_all_valid(self, runner, dist_file, dist_data):
        result = runner.invoke(main, ["verify", dist_file])
        assert result.exit_code == 0
        assert f"OK 2 proofs verified for {dist_data['merkleRoot']}" in result.output

    def test_invalid_entry(self, runner, tmp_path, dist_data):
        dist_data["claims"][addr(2)]["amount"] = "999"
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(dist_data))
        result = runner.invoke(main, ["verify", str(path)])
        assert result.exit_code == 1
        assert f"FAIL {addr(2)}" in result.output
        assert "1 of 2 proofs invalid" in result.output

    def test_unreadable_file(self, runner, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        result = runner.invoke(main, ["verify", str(path)])
        assert result.exit_code == 1
        assert "Cannot read" in result.output

    def test_log_level_option(self, runner, dist_file):
        result = runner.invoke(main, ["--log-level", "DEBUG", "verify", dist_file])
        assert result.exit_code == 0


class TestShowCommand:

    def test_summary(self, runner, dist_file, dist_data):
        result = runner.invoke(main, ["show", dist_file])
        assert result.exit_code == 0
        summary = json.loads(result.output)
        assert summary == {
            "merkleRoot": dist_data["merkleRoot"],
            "totalAmount": "300",
            "claims": 2,
        }

    def test_single_account(self, runner, dist_file, dist_data):
        result = runner.invoke(main, ["show", dist_file, "--account", addr(2)])
        assert result.exit_code == 0
        claim = json.loads(result.output)
        assert claim["beneficiary"] == addr(102)
        assert claim["amount"] == 200
        assert claim["proof"] == dist_data["claims"][addr(2)]["proof"]

    def test_unknown_account(self, runner, dist_file):
        result = runner.invoke(main, ["show", dist_file, "--account", addr(9)])
        assert result.exit_code == 1
        assert "No claim for" in result.output

    def test_malformed_account(self, runner, dist_file):
        result = runner.invoke(main, ["show", dist_file, "--account", "0x12"])
        assert result.exit_code == 2
