"""Tests for configuration loading in gossip_discovery.cli."""

from __future__ import annotations

import json

import pytest

from gossip_discovery.cli import arg_overrides, env_overrides, load_config, parse_args
from gossip_discovery.node import DEFAULT_INTERVAL, DEFAULT_PORT


class TestLoadConfig:
    def test_defaults(self):
        config = load_config(None)
        assert config.host == "0.0.0.0"
        assert config.port == DEFAULT_PORT
        assert config.interval == DEFAULT_INTERVAL
        assert config.seed_peers == []
        assert config.status_port is None

    def test_from_file(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text(json.dumps({
            "port": 9000,
            "interval": 2.5,
            "seed_peers": ["10.0.0.1", "10.0.0.2"],
            "use_broadcast": True,
        }))
        config = load_config(str(path))
        assert config.port == 9000
        assert config.interval == 2.5
        assert config.seed_peers == ["10.0.0.1", "10.0.0.2"]
        assert config.use_broadcast is True

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            load_config(str(tmp_path / "nope.json"))

    def test_overrides_apply_in_order(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text(json.dumps({"port": 9000, "host": "10.0.0.9"}))
        config = load_config(str(path), {"port": 9001}, {"port": 9002})
        assert config.port == 9002
        assert config.host == "10.0.0.9"

    def test_comma_separated_peers_in_file(self, tmp_path):
        path = tmp_path / "node.json"
        path.write_text(json.dumps({"seed_peers": "10.0.0.1, 10.0.0.2"}))
        assert load_config(str(path)).seed_peers == ["10.0.0.1", "10.0.0.2"]


class TestOverrides:
    def test_env(self):
        overrides = env_overrides({
            "GOSSIP_PORT": "7000",
            "GOSSIP_PEERS": "10.0.0.1,10.0.0.2",
            "GOSSIP_INTERVAL": "0.5",
            "UNRELATED": "x",
        })
        assert overrides == {
            "port": 7000,
            "seed_peers": ["10.0.0.1", "10.0.0.2"],
            "interval": 0.5,
        }

    def test_args(self):
        args = parse_args([
            "--port", "7001",
            "--dest-port", "7002",
            "--peers", "10.0.0.3",
            "--broadcast",
            "--status-port", "8946",
        ])
        assert arg_overrides(args) == {
            "port": 7001,
            "dest_port": 7002,
            "seed_peers": ["10.0.0.3"],
            "use_broadcast": True,
            "status_port": 8946,
        }

    def test_no_args_no_overrides(self):
        assert arg_overrides(parse_args([])) == {}
        assert parse_args([]).log_level == "INFO"
