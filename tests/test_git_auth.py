"""
Tests for credential resolution.

Covers URL classification, URL validation, SSH key discovery and loading
(plain, encrypted, corrupt), the environment a Credential hands to git, and
the explicit-versus-inferred resolution rules.
"""

import base64
import os
import stat
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from gitdesk.core.config.models import RemoteConfig
from gitdesk.core.git.auth import (
    Credential,
    detect_auth_type,
    find_default_ssh_key,
    get_credential,
    load_ssh_key,
    resolve_credential,
    validate_clone_url,
)
from gitdesk.core.git.errors import (
    InvalidSSHKeyError,
    InvalidURLError,
    PassphraseRequiredError,
    SSHKeyNotFoundError,
)
from gitdesk.core.git.models import AuthConfig, AuthType


def _write_key(path, passphrase=None, openssh=False):
    key = ed25519.Ed25519PrivateKey.generate()
    if openssh:
        data = key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.OpenSSH,
            serialization.NoEncryption(),
        )
    else:
        encryption = (
            serialization.BestAvailableEncryption(passphrase.encode())
            if passphrase
            else serialization.NoEncryption()
        )
        data = key.private_bytes(
            serialization.Encoding.PEM, serialization.PrivateFormat.PKCS8, encryption
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def ssh_dir(isolated_env):
    path = isolated_env / ".ssh"
    path.mkdir()
    return path


class TestDetectAuthType:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("git@github.com:user/repo.git", AuthType.SSH),
            ("ssh://git@example.com/team/repo.git", AuthType.SSH),
            ("deploy@build.example.com:repos/app.git", AuthType.SSH),
            ("https://github.com/user/repo.git", AuthType.HTTPS),
            ("http://intranet/repo.git", AuthType.HTTPS),
            ("HTTPS://GitHub.com/User/Repo", AuthType.HTTPS),
            ("file:///srv/git/repo.git", AuthType.NONE),
            ("/srv/git/repo.git", AuthType.NONE),
        ],
    )
    def test_detect(self, url, expected):
        assert detect_auth_type(url) == expected


class TestValidateCloneUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "git@github.com:user/repo.git",
            "ssh://git@example.com/repo.git",
            "https://github.com/user/repo.git",
            "http://example.com/repo.git",
            "git://example.com/repo.git",
            "file:///srv/git/repo.git",
            "alice@host:project.git",
        ],
    )
    def test_accepts_git_urls(self, url):
        validate_clone_url(url)

    @pytest.mark.parametrize(
        "url", ["", "   ", "not a url", "ftp://example.com/repo", "/srv/repo.git"]
    )
    def test_rejects_other_strings(self, url):
        with pytest.raises(InvalidURLError):
            validate_clone_url(url)


class TestFindDefaultSshKey:
    def test_no_keys(self, ssh_dir, isolated_env):
        assert find_default_ssh_key(home=isolated_env) is None

    def test_falls_back_to_rsa(self, ssh_dir, isolated_env):
        _write_key(ssh_dir / "id_rsa")
        assert find_default_ssh_key(home=isolated_env) == ssh_dir / "id_rsa"

    def test_prefers_ed25519(self, ssh_dir, isolated_env):
        _write_key(ssh_dir / "id_rsa")
        _write_key(ssh_dir / "id_ed25519")
        assert find_default_ssh_key(home=isolated_env) == ssh_dir / "id_ed25519"

    def test_custom_candidates(self, ssh_dir, isolated_env):
        _write_key(ssh_dir / "work_key")
        found = find_default_ssh_key(["missing", "work_key"], home=isolated_env)
        assert found == ssh_dir / "work_key"


class TestLoadSshKey:
    def test_missing_file(self, tmp_path):
        with pytest.raises(SSHKeyNotFoundError):
            load_ssh_key(tmp_path / "nope")

    def test_plain_openssh_key(self, tmp_path):
        path = _write_key(tmp_path / "id_ed25519", openssh=True)
        assert load_ssh_key(path) is not None

    def test_plain_pem_key(self, tmp_path):
        path = _write_key(tmp_path / "id_pem")
        assert load_ssh_key(path) is not None

    def test_passphrase_for_plain_key_is_ignored(self, tmp_path):
        path = _write_key(tmp_path / "id_pem")
        assert load_ssh_key(path, "unused") is not None

    def test_encrypted_key_without_passphrase(self, tmp_path):
        path = _write_key(tmp_path / "id_enc", passphrase="correct horse")
        with pytest.raises(PassphraseRequiredError) as exc_info:
            load_ssh_key(path)
        assert exc_info.value.key_path == str(path)

    def test_encrypted_key_with_passphrase(self, tmp_path):
        path = _write_key(tmp_path / "id_enc", passphrase="correct horse")
        assert load_ssh_key(path, "correct horse") is not None

    def test_encrypted_key_wrong_passphrase(self, tmp_path):
        path = _write_key(tmp_path / "id_enc", passphrase="correct horse")
        with pytest.raises(InvalidSSHKeyError):
            load_ssh_key(path, "battery staple")

    def test_garbage_file(self, tmp_path):
        path = tmp_path / "id_bad"
        path.write_text("this is not a key")
        with pytest.raises(InvalidSSHKeyError):
            load_ssh_key(path)


class TestCredential:
    def test_anonymous_only_disables_prompts(self):
        with Credential() as env:
            assert env == {"GIT_TERMINAL_PROMPT": "0"}

    def test_https_injects_basic_auth_header(self):
        cred = Credential(AuthType.HTTPS, username="alice", password="s3cret")
        with cred as env:
            token = base64.b64encode(b"alice:s3cret").decode()
            assert env["GIT_CONFIG_KEY_0"] == "http.extraHeader"
            assert env["GIT_CONFIG_VALUE_0"] == f"Authorization: Basic {token}"

    def test_repr_hides_secrets(self):
        cred = Credential(AuthType.HTTPS, username="alice", password="s3cret")
        assert "s3cret" not in repr(cred)

    def test_ssh_uses_key_directly(self, tmp_path):
        key = _write_key(tmp_path / "id_ed25519", openssh=True)
        with Credential(AuthType.SSH, key_path=key) as env:
            command = env["GIT_SSH_COMMAND"]
            assert str(key) in command
            assert "IdentitiesOnly=yes" in command
            assert "BatchMode=yes" in command

    def test_ssh_passphrase_writes_private_temp_key(self, tmp_path):
        key = _write_key(tmp_path / "id_enc", passphrase="pw")
        cred = Credential(AuthType.SSH, key_path=key, passphrase="pw")

        with cred as env:
            identity = env["GIT_SSH_COMMAND"].split(" -i ", 1)[1].split(" ", 1)[0]
            assert identity != str(key)
            assert os.path.exists(identity)
            assert stat.S_IMODE(os.stat(identity).st_mode) == 0o600
            # The decrypted copy loads without a passphrase
            assert load_ssh_key(Path(identity)) is not None

        assert not os.path.exists(identity)


class TestGetCredential:
    def test_explicit_missing_key(self, tmp_path):
        config = AuthConfig(type=AuthType.SSH, ssh_key_path=str(tmp_path / "missing"))
        with pytest.raises(SSHKeyNotFoundError):
            get_credential(config)

    def test_no_default_key(self, ssh_dir):
        with pytest.raises(SSHKeyNotFoundError, match="id_ed25519"):
            get_credential(AuthConfig(type=AuthType.SSH))

    def test_default_key(self, ssh_dir):
        _write_key(ssh_dir / "id_ed25519", openssh=True)
        cred = get_credential(AuthConfig(type=AuthType.SSH))
        assert cred.auth_type == AuthType.SSH
        assert cred.key_path == ssh_dir / "id_ed25519"

    def test_encrypted_key_needs_passphrase(self, tmp_path):
        key = _write_key(tmp_path / "id_enc", passphrase="pw")
        with pytest.raises(PassphraseRequiredError):
            get_credential(AuthConfig(type=AuthType.SSH, ssh_key_path=str(key)))

    def test_ssh_user_from_remote_config(self, tmp_path):
        key = _write_key(tmp_path / "id_ed25519", openssh=True)
        cred = get_credential(
            AuthConfig(type=AuthType.SSH, ssh_key_path=str(key)),
            RemoteConfig(ssh_user="deploy"),
        )
        assert cred.ssh_user == "deploy"

    def test_https_without_credentials_is_anonymous(self):
        assert get_credential(AuthConfig(type=AuthType.HTTPS)).is_anonymous

    def test_none(self):
        assert get_credential(AuthConfig()).is_anonymous


class TestResolveCredential:
    def test_ssh_url_without_key_falls_back_to_anonymous(self, ssh_dir):
        cred = resolve_credential("git@github.com:user/repo.git", None)
        assert cred.is_anonymous

    def test_ssh_url_with_encrypted_default_key_falls_back(self, ssh_dir):
        _write_key(ssh_dir / "id_ed25519", passphrase="pw")
        cred = resolve_credential("git@github.com:user/repo.git", None)
        assert cred.is_anonymous

    def test_ssh_url_uses_default_key(self, ssh_dir):
        _write_key(ssh_dir / "id_ed25519", openssh=True)
        cred = resolve_credential("git@github.com:user/repo.git", None)
        assert cred.auth_type == AuthType.SSH

    def test_explicit_ssh_errors_propagate(self, ssh_dir):
        with pytest.raises(SSHKeyNotFoundError):
            resolve_credential("https://example.com/repo.git", AuthConfig(type=AuthType.SSH))

    def test_https_url_uses_supplied_password(self):
        cred = resolve_credential(
            "https://example.com/repo.git", AuthConfig(username="bob", password="token")
        )
        assert cred.auth_type == AuthType.HTTPS

    def test_https_url_without_auth(self):
        assert resolve_credential("https://example.com/repo.git", None).is_anonymous

    def test_local_url(self):
        assert resolve_credential("file:///srv/repo.git", None).is_anonymous
