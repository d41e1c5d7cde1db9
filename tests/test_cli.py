import pytest

from linemux.__main__ import main
from linemux.config import ENV_CHUNK_SIZE, ENV_POLL_INTERVAL


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(ENV_CHUNK_SIZE, raising=False)
    monkeypatch.delenv(ENV_POLL_INTERVAL, raising=False)


def test_no_paths_prints_usage(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main([])

    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert out.startswith("usage: linemux")


def test_missing_path_exits_nonzero(tmp_path, capsys):
    missing = tmp_path / "nope"

    with pytest.raises(SystemExit) as excinfo:
        main([str(missing)])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "cannot open" in err
    assert str(missing) in err


def test_merges_into_output_file(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    out = tmp_path / "merged"
    a.write_bytes(b"a1\na2\n")
    b.write_bytes(b"b1\nb2\n")

    with pytest.raises(SystemExit) as excinfo:
        main(["-o", str(out), "--poll-interval", "0.01", "--chunk-size", "3",
              str(a), str(b)])

    assert excinfo.value.code == 0
    lines = out.read_bytes().splitlines(keepends=True)
    assert sorted(lines) == [b"a1\n", b"a2\n", b"b1\n", b"b2\n"]
    assert [line for line in lines if line.startswith(b"a")] == [b"a1\n", b"a2\n"]


def test_bad_environment_value(tmp_path, monkeypatch, capsys):
    source = tmp_path / "a"
    source.write_bytes(b"x\n")
    monkeypatch.setenv(ENV_CHUNK_SIZE, "big")

    with pytest.raises(SystemExit) as excinfo:
        main([str(source)])

    assert excinfo.value.code == 2
    assert ENV_CHUNK_SIZE in capsys.readouterr().err


def test_unwritable_output_exits_nonzero(tmp_path, capsys):
    src = tmp_path / "a"
    src.write_bytes(b"a1\n")
    out = tmp_path / "nodir" / "merged"

    with pytest.raises(SystemExit) as excinfo:
        main(["-o", str(out), str(src)])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "cannot open output" in err
    assert str(out) in err
