"""Tests for the upload staging area.

Covers path allocation (naming, uniqueness, location under the staging
root), persisting payloads, idempotent removal of staged files and
directories, and tracking which paths an instance owns.

See Also:
    - backend/geoconvert/services/staging.py for implementation details.
"""

from __future__ import annotations

import pathlib
import uuid

import pytest

from geoconvert.services import staging


def test_ensure_tolerates_existing_directory(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path / "uploads")
    area.ensure()
    area.ensure()
    assert area.root.is_dir()


def test_download_name_uses_client_base_name() -> None:
    assert (
        staging.download_name_for("GEOJSON", "input.geojson")
        == "converted-input.geojson"
    )
    assert (
        staging.download_name_for("DXF", "dir/sub/parcels.shp")
        == "converted-parcels.dxf"
    )
    assert (
        staging.download_name_for("CSV", "C:\\data\\points.gpkg")
        == "converted-points.csv"
    )


def test_download_name_without_client_name_is_random() -> None:
    name = staging.download_name_for("GPKG")
    assert name.startswith("converted-")
    assert name.endswith(".gpkg")
    uuid.UUID(name[len("converted-") : -len(".gpkg")])
    assert name != staging.download_name_for("GPKG", "   ")


def test_allocate_paths_live_under_root(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path)
    staged = area.allocate("GEOJSON", "input.geojson")
    assert staged.input_path.parent == tmp_path
    assert staged.output_path.parent == tmp_path
    assert staged.input_path.name.startswith("upload-")
    assert staged.output_path.name.endswith("-converted-input.geojson")
    assert staged.download_name == "converted-input.geojson"


def test_allocate_is_unique_for_same_client_name(
    tmp_path: pathlib.Path,
) -> None:
    area = staging.UploadStagingArea(tmp_path)
    allocations = [area.allocate("DXF", "same.shp") for _ in range(50)]
    paths = {a.input_path for a in allocations} | {
        a.output_path for a in allocations
    }
    assert len(paths) == 100
    assert {a.download_name for a in allocations} == {"converted-same.dxf"}


@pytest.mark.asyncio
async def test_write_and_remove(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path)
    staged = area.allocate("GEOJSON")

    await area.write(staged.input_path, b"POINT (1 2)")
    assert staged.input_path.read_bytes() == b"POINT (1 2)"
    assert area.leftovers() == [staged.input_path]

    assert await area.remove(staged.input_path) is True
    assert await area.remove(staged.input_path) is False
    assert area.leftovers() == []


@pytest.mark.asyncio
async def test_remove_swallows_os_errors(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: pathlib.Path,
) -> None:
    async def failing_remove(path: pathlib.Path) -> None:
        raise PermissionError("read-only")

    monkeypatch.setattr(staging.aiofiles.os, "remove", failing_remove)
    area = staging.UploadStagingArea(tmp_path)

    assert await area.remove(tmp_path / "whatever.bin") is False


def test_leftovers_of_missing_root(tmp_path: pathlib.Path) -> None:
    assert staging.UploadStagingArea(tmp_path / "absent").leftovers() == []


@pytest.mark.asyncio
async def test_remove_deletes_directories(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path)
    staged = area.allocate("ESRI SHAPEFILE", "parcels.geojson")
    staged.output_path.mkdir()
    (staged.output_path / "parcels.shp").write_bytes(b"shp")
    (staged.output_path / "parcels.dbf").write_bytes(b"dbf")
    assert area.leftovers() == [staged.output_path]

    assert await area.remove(staged.output_path) is True
    assert not staged.output_path.exists()
    assert area.leftovers() == []


def test_owned_tracks_allocations(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path)
    assert area.owned() == []
    staged = area.allocate("DXF", "a.geojson")
    assert area.owned() == sorted([staged.input_path, staged.output_path])


@pytest.mark.asyncio
async def test_remove_forgets_owned_path(tmp_path: pathlib.Path) -> None:
    area = staging.UploadStagingArea(tmp_path)
    staged = area.allocate("DXF", "a.geojson")

    await area.remove(staged.input_path)

    assert area.owned() == [staged.output_path]


def test_other_instances_do_not_share_ownership(tmp_path: pathlib.Path) -> None:
    first = staging.UploadStagingArea(tmp_path)
    second = staging.UploadStagingArea(tmp_path)
    first.allocate("DXF")
    assert second.owned() == []
