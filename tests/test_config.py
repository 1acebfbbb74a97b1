"""
Tests for environment configuration and the CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from autopeer.cli import main
from autopeer.config import AppConfig, ConfigurationError, load_secret, parse_bind_address
from autopeer.store import PeeringState, PeeringStore
from autopeer.wgconf import InterfaceSection, PeeringConfig

from conftest import SECRET


@pytest.fixture
def env(tmp_path):
    return {
        "AUTOPEER_SECRET": SECRET,
        "AUTOPEER_SECRET_FILE": str(tmp_path / "missing"),
        "DATA_PENDING_DIR": str(tmp_path / "pending"),
        "DATA_VERIFIED_DIR": str(tmp_path / "verified"),
    }


# ---------------------------------------------------------------------------
# TestAppConfig
# ---------------------------------------------------------------------------

class TestAppConfig:

    def test_defaults(self, env):
        config = AppConfig.from_env(env)
        assert config.local_asn == 4242420257
        assert (config.host, config.port) == ("127.0.0.1", 3000)
        assert config.cookie_domains == ["localhost"]
        assert config.cookie_secure is True
        assert config.wireguard_dir == Path("/etc/wireguard")
        assert config.deploy_timeout == 30

    def test_overrides(self, env):
        env.update({
            "MY_ASN": "4242421234",
            "BIND_ADDRESS": "[::1]:8080",
            "COOKIE_DOMAINS": "peer.example.net, localhost,",
            "COOKIE_SECURE": "off",
            "DN42_GIT_TOKEN": "tok",
            "DEPLOY_TIMEOUT": "5",
        })
        config = AppConfig.from_env(env)
        assert config.local_asn == 4242421234
        assert (config.host, config.port) == ("::1", 8080)
        assert config.cookie_domains == ["peer.example.net", "localhost"]
        assert config.cookie_secure is False
        assert config.registry.token == "tok"
        assert config.deploy_timeout == 5.0

    def test_secret_required(self, env):
        del env["AUTOPEER_SECRET"]
        with pytest.raises(ConfigurationError, match="at least"):
            AppConfig.from_env(env)

    def test_short_secret(self, env):
        env["AUTOPEER_SECRET"] = "short"
        with pytest.raises(ConfigurationError):
            AppConfig.from_env(env)

    def test_secret_from_file(self, env, tmp_path):
        del env["AUTOPEER_SECRET"]
        secret_file = tmp_path / "secret"
        secret_file.write_text(SECRET + "\n")
        env["AUTOPEER_SECRET_FILE"] = str(secret_file)
        assert load_secret(env) == SECRET
        assert AppConfig.from_env(env).secret == SECRET

    @pytest.mark.parametrize("asn", ["abc", "64512"])
    def test_bad_local_asn(self, env, asn):
        env["MY_ASN"] = asn
        with pytest.raises(ConfigurationError):
            AppConfig.from_env(env)

    @pytest.mark.parametrize("timeout", ["soon", "0", "-1"])
    def test_bad_timeout(self, env, timeout):
        env["DEPLOY_TIMEOUT"] = timeout
        with pytest.raises(ConfigurationError):
            AppConfig.from_env(env)

    def test_bind_address(self):
        assert parse_bind_address("0.0.0.0:3000") == ("0.0.0.0", 3000)
        assert parse_bind_address(":3000") == ("127.0.0.1", 3000)
        with pytest.raises(ConfigurationError):
            parse_bind_address("localhost")
        with pytest.raises(ConfigurationError):
            parse_bind_address("localhost:99999")


# ---------------------------------------------------------------------------
# TestCLI
# ---------------------------------------------------------------------------

class TestCLI:

    def test_no_command_prints_usage(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main([])
        assert exc.value.code == 0
        assert "Usage:" in capsys.readouterr().out

    def test_addresses(self, capsys):
        main(["addresses", "AS4242422225"])
        out = capsys.readouterr().out
        assert "wg-as4242422225" in out
        assert "32225" in out
        assert "fe80::2225:257:0/64" in out
        assert "fe80::2225:257:1" in out
        assert "autopeer_as4242422225" in out

    def test_addresses_out_of_range(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["addresses", "64512"])
        assert exc.value.code == 1
        assert "outside the DN42 range" in capsys.readouterr().err

    def test_keygen_public_only(self, capsys):
        main(["keygen", "--public-only"])
        assert len(capsys.readouterr().out.strip()) == 44

    def test_keygen(self, capsys):
        main(["keygen"])
        out = capsys.readouterr().out
        assert out.startswith("PrivateKey = ")
        assert "PublicKey  = " in out

    def test_list(self, env, monkeypatch, capsys):
        for key, value in env.items():
            monkeypatch.setenv(key, value)
        store = PeeringStore(env["DATA_PENDING_DIR"], env["DATA_VERIFIED_DIR"])
        store.save_verified(4242422225, PeeringConfig(
            interface=InterfaceSection(
                addresses=["fe80::2225:257:0/64"],
                private_key="yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk=",
                listen_port=32225,
            ),
        ))
        store.set_state(4242422225, PeeringState.DEPLOYED)

        main(["list"])
        out = capsys.readouterr().out
        assert "1 peering(s)" in out
        assert "AS4242422225" in out
        assert "deployed" in out

    def test_list_without_secret(self, monkeypatch, tmp_path, capsys):
        monkeypatch.delenv("AUTOPEER_SECRET", raising=False)
        monkeypatch.setenv("AUTOPEER_SECRET_FILE", str(tmp_path / "missing"))
        with pytest.raises(SystemExit) as exc:
            main(["list"])
        assert exc.value.code == 1
        assert "AUTOPEER_SECRET" in capsys.readouterr().err
