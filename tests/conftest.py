import pytest

from src.xgfile.config import ExtractConfig

from helpers import build_xg_file, game_data


@pytest.fixture
def temp_dir(tmp_path):
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def config(temp_dir):
    return ExtractConfig(temp_dir=str(temp_dir))


@pytest.fixture
def write_xg(tmp_path):
    """Write a synthetic XG file and return its path."""
    def _write(entries=None, name="match.xg", **kwargs):
        if entries is None:
            entries = [("temp.xg", game_data(), True)]
        path = tmp_path / name
        path.write_bytes(build_xg_file(entries, **kwargs))
        return path
    return _write
