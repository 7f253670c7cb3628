import math

import numpy as np
import pytest
import trimesh

from pack3d.errors import ConfigurationError, MeshLoadError
from pack3d.objects import (
    ObjectDescriptor,
    PackingSetup,
    build_setup,
    deviation_for_volume,
    parse_count,
    parse_rotation_flags,
)


def _box_loader(extents_by_name: dict[str, tuple[float, float, float]]):
    loaded: list[str] = []

    def load(token: str) -> trimesh.Trimesh:
        loaded.append(token)
        if token not in extents_by_name:
            raise MeshLoadError(f"{token}: no such file")
        return trimesh.creation.box(extents=extents_by_name[token])

    load.loaded = loaded  # type: ignore[attr-defined]
    return load


CUBES = {"a.stl": (10.0, 10.0, 10.0), "b.stl": (10.0, 10.0, 10.0), "c.stl": (1.0, 2.0, 4.0)}


def test_rotation_flags_default_to_true() -> None:
    assert parse_rotation_flags("", 3) == [True, True, True]
    assert parse_rotation_flags(None, 2) == [True, True]
    assert parse_rotation_flags("", 0) == []


def test_rotation_flags_accept_parse_bool_spellings() -> None:
    flags = parse_rotation_flags("1,0,t,F,TRUE,false,True,f", 8)
    assert flags == [True, False, True, False, True, False, True, False]


def test_rotation_flags_shorter_list_leaves_rest_enabled() -> None:
    assert parse_rotation_flags("0", 3) == [False, True, True]


def test_rotation_flags_extra_entries_are_ignored() -> None:
    assert parse_rotation_flags("0,0,0,1", 2) == [False, False]


@pytest.mark.parametrize("text", ["1,yes", "2", "1,,0", "on"])
def test_rotation_flags_malformed_entry_raises(text: str) -> None:
    with pytest.raises(ConfigurationError):
        parse_rotation_flags(text, 3)


def test_rotation_flags_stop_after_first_extra_entry() -> None:
    # The first entry past the argument count is still validated, later ones are not.
    with pytest.raises(ConfigurationError):
        parse_rotation_flags("1,0,x", 2)
    assert parse_rotation_flags("1,0,1,x", 2) == [True, False]


def test_parse_count() -> None:
    assert parse_count("3") == 3
    assert parse_count("0x10") == 16
    assert parse_count("08") == 8
    assert parse_count("mesh.stl") is None
    assert parse_count("2.5") is None
    assert parse_count("²") is None
    assert parse_count("mesh²") is None
    for bad in ("0", "-2"):
        with pytest.raises(ConfigurationError):
            parse_count(bad)


def test_deviation_is_cube_root_over_32() -> None:
    assert math.isclose(deviation_for_volume(2000.0), 2000.0 ** (1.0 / 3.0) / 32.0)
    assert deviation_for_volume(32768.0) == pytest.approx(1.0)
    assert deviation_for_volume(0.0) == 0.0
    with pytest.raises(ValueError):
        deviation_for_volume(-1.0)


def test_two_cubes_scenario() -> None:
    tokens = ["a.stl", "b.stl"]
    setup = build_setup(tokens, parse_rotation_flags("1,0", len(tokens)), load=_box_loader(CUBES), verbose=False)

    assert setup.total_volume == pytest.approx(2000.0)
    assert [obj.rotation_allowed for obj in setup.objects] == [True, False]
    assert [obj.count for obj in setup.objects] == [1, 1]
    assert deviation_for_volume(setup.total_volume) == pytest.approx(0.394, abs=1e-3)


def test_count_applies_to_following_meshes() -> None:
    tokens = ["3", "a.stl", "b.stl", "2", "c.stl"]
    setup = build_setup(tokens, load=_box_loader(CUBES), verbose=False)

    assert [obj.count for obj in setup.objects] == [3, 3, 2]
    assert [obj.name for obj in setup.objects] == ["a.stl", "b.stl", "c.stl"]
    assert setup.instance_count == 8
    # Volume is accumulated once per distinct mesh argument, not per copy.
    assert setup.total_volume == pytest.approx(1000.0 + 1000.0 + 8.0)


def test_rotation_flag_uses_position_among_all_arguments() -> None:
    tokens = ["2", "a.stl", "3", "b.stl"]

    setup = build_setup(tokens, parse_rotation_flags("1,0,1,0", 4), load=_box_loader(CUBES), verbose=False)
    assert [obj.rotation_allowed for obj in setup.objects] == [False, False]

    setup = build_setup(tokens, parse_rotation_flags("0,1", 4), load=_box_loader(CUBES), verbose=False)
    assert [obj.rotation_allowed for obj in setup.objects] == [True, True]


def test_meshes_beyond_rotation_list_default_to_rotation_allowed() -> None:
    tokens = ["a.stl", "b.stl", "c.stl"]
    setup = build_setup(tokens, [False], load=_box_loader(CUBES), verbose=False)
    assert [obj.rotation_allowed for obj in setup.objects] == [False, True, True]


@pytest.mark.parametrize("tokens", [[], ["2"], ["2", "5"]])
def test_no_mesh_is_a_configuration_error(tokens: list[str]) -> None:
    load = _box_loader(CUBES)
    with pytest.raises(ConfigurationError):
        build_setup(tokens, load=load, verbose=False)
    assert load.loaded == []


def test_load_failure_aborts_setup() -> None:
    load = _box_loader(CUBES)
    with pytest.raises(MeshLoadError):
        build_setup(["a.stl", "missing.stl", "b.stl"], load=load, verbose=False)
    assert load.loaded == ["a.stl", "missing.stl"]


def test_meshes_are_centered() -> None:
    def load(_token: str) -> trimesh.Trimesh:
        mesh = trimesh.creation.box(extents=(2.0, 4.0, 6.0))
        mesh.apply_translation([5.0, -3.0, 7.0])
        return mesh

    setup = build_setup(["off_center.stl"], load=load, verbose=False)
    bounds = np.asarray(setup.objects[0].geometry.bounds)
    np.testing.assert_allclose((bounds[0] + bounds[1]) * 0.5, 0.0, atol=1e-9)
    assert setup.total_volume == pytest.approx(48.0)


def test_verbose_setup_reports_geometry(capsys: pytest.CaptureFixture[str]) -> None:
    build_setup(["c.stl"], load=_box_loader(CUBES), verbose=True)
    out = capsys.readouterr().out
    assert "loading mesh c.stl... " in out
    assert "12 triangles" in out
    assert "1 x 2 x 4" in out
    assert "centering mesh... " in out


def test_packing_setup_accumulates() -> None:
    setup = PackingSetup()
    setup.add(ObjectDescriptor(geometry=None, count=2), 10.0)
    setup.add(ObjectDescriptor(geometry=None), 5.0)
    assert setup.total_volume == 15.0
    assert setup.instance_count == 3


def test_superscript_digit_token_is_a_mesh() -> None:
    load = _box_loader({"²": (1.0, 1.0, 1.0)})
    setup = build_setup(["2", "²"], load=load, verbose=False)
    assert load.loaded == ["²"]
    assert [(obj.name, obj.count) for obj in setup.objects] == [("²", 2)]
