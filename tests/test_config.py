import pytest

from linemux.config import MuxConfig, ENV_CHUNK_SIZE, ENV_POLL_INTERVAL


def test_defaults():
    config = MuxConfig()
    assert config.chunk_size == 64 * 1024
    assert config.poll_interval == 0.05


def test_from_env_mapping():
    config = MuxConfig.from_env({ENV_POLL_INTERVAL: "0.2", ENV_CHUNK_SIZE: "1024"})
    assert config == MuxConfig(poll_interval=0.2, chunk_size=1024)


def test_from_env_blank_uses_defaults():
    assert MuxConfig.from_env({ENV_CHUNK_SIZE: "  "}) == MuxConfig()


def test_from_env_process_environment(monkeypatch):
    monkeypatch.setenv(ENV_CHUNK_SIZE, "512")
    monkeypatch.delenv(ENV_POLL_INTERVAL, raising=False)
    assert MuxConfig.from_env(dotenv=False).chunk_size == 512


def test_invalid_value_names_variable():
    with pytest.raises(ValueError, match=ENV_CHUNK_SIZE):
        MuxConfig.from_env({ENV_CHUNK_SIZE: "lots"})


@pytest.mark.parametrize("kwargs", [
    {"poll_interval": 0},
    {"poll_interval": -1.0},
    {"chunk_size": 0},
])
def test_non_positive_rejected(kwargs):
    with pytest.raises(ValueError):
        MuxConfig(**kwargs)


def test_override_keeps_unset_fields():
    base = MuxConfig(poll_interval=0.3, chunk_size=99)
    assert base.override(chunk_size=10) == MuxConfig(poll_interval=0.3, chunk_size=10)
    assert base.override() == base
