import subprocess

import pytest

from ocifetch.authn import Basic, Bearer, Helper
from ocifetch.authn.helper import SubprocessHelperRunner, invoke
from ocifetch.errors import HelperInvocationError


@pytest.fixture
def fake_run(monkeypatch):
    """Replace subprocess.run, returns the list of recorded calls

    Set `fake_run.result` to the CompletedProcess to return,
    or `fake_run.error` to an exception to raise.
    """

    class FakeRun:
        def __init__(self):
            self.result = None
            self.error = None
            self.calls = []

        def __call__(self, args, **kwargs):
            self.calls.append((args, kwargs))
            if self.error is not None:
                raise self.error
            return self.result

    fake = FakeRun()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


def completed(stdout=b"", stderr=b"", returncode=0):
    return subprocess.CompletedProcess([], returncode, stdout=stdout, stderr=stderr)


def test_get(fake_run):
    fake_run.result = completed(b'{"ServerURL": "test.io", "Username": "foo", "Secret": "bar"}')

    auth = invoke("test", "test.io", SubprocessHelperRunner())

    assert auth == Helper(name="test", host="test.io", credential=Basic("foo", "bar"))
    assert auth.authorization() == "Basic Zm9vOmJhcg=="
    args, kwargs = fake_run.calls[0]
    assert args == ["docker-credential-test", "get"]
    assert kwargs["input"] == b"test.io"


def test_get_identity_token(fake_run):
    fake_run.result = completed(b'{"Username": "<token>", "Secret": "refresh-me"}')

    auth = invoke("test", "test.io", SubprocessHelperRunner())

    assert auth.credential == Bearer("refresh-me")


@pytest.mark.parametrize(
    "result",
    [
        completed(b"credentials not found in native keychain\n", returncode=1),
        completed(b"", b"boom", returncode=2),
        completed(b"not json"),
        completed(b'{"Username": "foo"}'),
    ],
)
def test_get_failures(fake_run, result):
    fake_run.result = result

    with pytest.raises(HelperInvocationError) as exc_info:
        SubprocessHelperRunner().get("test", "test.io")

    assert exc_info.value.helper == "test"
    assert exc_info.value.host == "test.io"


@pytest.mark.parametrize(
    "error",
    [
        FileNotFoundError("docker-credential-test"),
        subprocess.TimeoutExpired(["docker-credential-test"], 30),
    ],
)
def test_get_not_runnable(fake_run, error):
    fake_run.error = error

    with pytest.raises(HelperInvocationError):
        SubprocessHelperRunner().get("test", "test.io")


def test_secret_not_in_repr(fake_run):
    fake_run.result = completed(b'{"Username": "foo", "Secret": "hunter2"}')

    auth = invoke("test", "test.io", SubprocessHelperRunner())

    assert "hunter2" not in repr(auth)
