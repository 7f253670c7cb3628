import os
import stat

import pytest
import trimesh

from pack3d.errors import PersistenceError
from pack3d.persistence import save_mesh


class _BrokenMesh:
    def export(self, file_obj=None, file_type=None):
        file_obj.write(b"partial")
        raise ValueError("export failed")


def test_save_writes_stl(tmp_path) -> None:
    out = tmp_path / "packing.stl"
    save_mesh(out, trimesh.creation.box(extents=(1.0, 2.0, 3.0)))

    loaded = trimesh.load(str(out), force="mesh")
    assert len(loaded.faces) == 12
    assert list(tmp_path.iterdir()) == [out]


def test_save_overwrites(tmp_path) -> None:
    out = tmp_path / "packing.stl"
    save_mesh(out, trimesh.creation.box())
    save_mesh(out, trimesh.util.concatenate([trimesh.creation.box(), trimesh.creation.box().apply_translation([3, 0, 0])]))

    assert len(trimesh.load(str(out), force="mesh").faces) == 24
    assert list(tmp_path.iterdir()) == [out]


def test_missing_directory_is_persistence_error(tmp_path) -> None:
    with pytest.raises(PersistenceError):
        save_mesh(tmp_path / "missing" / "packing.stl", trimesh.creation.box())
    assert not (tmp_path / "missing").exists()


def test_failed_export_keeps_previous_artifact(tmp_path) -> None:
    out = tmp_path / "packing.stl"
    save_mesh(out, trimesh.creation.box())
    before = out.read_bytes()

    with pytest.raises(PersistenceError):
        save_mesh(out, _BrokenMesh())
    assert out.read_bytes() == before
    assert list(tmp_path.iterdir()) == [out]


@pytest.fixture
def umask_022():
    old = os.umask(0o022)
    yield
    os.umask(old)


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_new_file_gets_umask_mode(tmp_path, umask_022) -> None:
    out = tmp_path / "packing.stl"
    save_mesh(out, trimesh.creation.box())
    assert stat.S_IMODE(out.stat().st_mode) == 0o644


@pytest.mark.skipif(os.name != "posix", reason="POSIX file modes")
def test_overwrite_keeps_existing_mode(tmp_path, umask_022) -> None:
    out = tmp_path / "packing.stl"
    save_mesh(out, trimesh.creation.box())
    os.chmod(out, 0o640)
    save_mesh(out, trimesh.creation.box())
    assert stat.S_IMODE(out.stat().st_mode) == 0o640
