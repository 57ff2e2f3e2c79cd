import json

import pytest
from click.testing import CliRunner

import ocifetch
from conftest import REPOSITORY, digest_of
from ocifetch.__main__ import cli


@pytest.fixture
def fake_image(monkeypatch, registry):
    """Route ocifetch.image() to the in-memory registry"""
    opened = []

    def image(reference, auth=None, **kwargs):
        opened.append((reference, auth))
        return registry.image(reference)

    monkeypatch.setattr(ocifetch, "image", image)
    return opened


def test_manifest(fake_image, registry):
    result = CliRunner().invoke(cli, ["--anonymous", "manifest", f"registry.example.com/{REPOSITORY}"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == json.loads(registry.manifest)
    reference, auth = fake_image[0]
    assert reference.repository == REPOSITORY
    assert auth.authorization() == ""


def test_config(fake_image, registry):
    result = CliRunner().invoke(cli, ["config", f"registry.example.com/{REPOSITORY}"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["architecture"] == "amd64"
    # Credentials are left to the keychain
    assert fake_image[0][1] is None


def test_blob(fake_image, registry, tmp_path):
    layer = registry.layers[1]
    output = tmp_path / "layer"

    result = CliRunner().invoke(
        cli,
        [
            "blob",
            f"registry.example.com/{REPOSITORY}",
            digest_of(layer),
            "--output",
            str(output),
        ],
    )

    assert result.exit_code == 0, result.output
    assert output.read_bytes() == layer


def test_blob_mismatch(fake_image, registry, tmp_path):
    digest = digest_of(registry.layers[0])
    registry.blobs[digest] = b"tampered"

    result = CliRunner().invoke(
        cli,
        [
            "blob",
            f"registry.example.com/{REPOSITORY}",
            digest,
            "--output",
            str(tmp_path / "layer"),
        ],
    )

    assert isinstance(result.exception, ocifetch.DigestMismatch)


def test_blob_invalid_digest(fake_image):
    result = CliRunner().invoke(
        cli, ["blob", f"registry.example.com/{REPOSITORY}", "sha256:NOT-HEX"]
    )

    assert result.exit_code == 2
    assert "Invalid value" in result.output
    # Rejected before the registry is contacted
    assert fake_image == []


def test_insecure(fake_image):
    CliRunner().invoke(cli, ["--insecure", "manifest", f"registry.example.com/{REPOSITORY}"])

    assert fake_image[0][0].url == "http://registry.example.com"


def test_auth(docker_config):
    docker_config('{"auths": {"test.io": {"username": "foo", "password": "bar"}}}')

    result = CliRunner().invoke(cli, ["auth", "test.io"])

    assert result.exit_code == 0, result.output
    output = json.loads(result.output)
    assert output["auth"] == "Basic(username='foo')"
    assert "bar" not in result.output
