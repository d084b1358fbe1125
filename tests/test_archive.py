import json
import zipfile

import pytest

from pbcli.archive import (
    create_project_archive,
    format_bytes,
    generate_package_metadata,
    validate_archive,
)
from pbcli.system import BuildError


@pytest.mark.parametrize(
    "size, expected",
    [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1.0 KB"),
        (1024 * 1024, "1.0 MB"),
        (1024 * 1024 * 1024, "1.0 GB"),
        (1024 * 1024 * 1024 * 1024, "1.0 TB"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024 * 1024, "5.0 GB"),
        (1023, "1023 B"),
    ],
)
def test_format_bytes(size, expected):
    assert format_bytes(size) == expected


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    dist = root / "dist"
    (dist / "pb_public" / "assets").mkdir(parents=True)
    (dist / "pb-cli").write_bytes(b"binary" * 100)
    (dist / "pb_public" / "index.html").write_text("<html></html>")
    (dist / "pb_public" / "assets" / "app.js").write_text("console.log(1)")
    return root


def test_create_project_archive_contents(project, tmp_path):
    out = tmp_path / "out"
    out.mkdir()
    archive = create_project_archive(project, out)
    assert archive.parent == out
    assert archive.name.startswith("pb-cli-production-")
    assert archive.suffix == ".zip"
    assert not (project / archive.name).exists()
    with zipfile.ZipFile(archive) as zf:
        names = set(zf.namelist())
        assert {"pb-cli", "pb_public/", "pb_public/assets/",
                "pb_public/index.html", "pb_public/assets/app.js"} <= names
        assert zf.read("pb_public/index.html") == b"<html></html>"
        assert zf.read("pb-cli") == b"binary" * 100


def test_create_project_archive_into_dist(project):
    archive = create_project_archive(project, project / "dist")
    assert archive.exists()
    with zipfile.ZipFile(archive) as zf:
        assert not any(n.endswith(".zip") for n in zf.namelist())


def test_create_project_archive_without_dist(tmp_path):
    with pytest.raises(BuildError, match="dist directory not found"):
        create_project_archive(tmp_path, tmp_path)


def test_validate_archive_round_trip(project, tmp_path):
    archive = create_project_archive(project, tmp_path)
    assert validate_archive(archive) is True


def test_validate_archive_without_binary(tmp_path, capsys):
    path = tmp_path / "a.zip"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("readme.txt", "x")
    assert validate_archive(path) is False
    assert "Server binary not found in archive" in capsys.readouterr().out


def test_validate_archive_empty(tmp_path):
    path = tmp_path / "empty.zip"
    with zipfile.ZipFile(path, "w"):
        pass
    with pytest.raises(BuildError, match="archive is empty"):
        validate_archive(path)


def test_validate_archive_missing(tmp_path):
    with pytest.raises(BuildError, match="archive not found"):
        validate_archive(tmp_path / "nope.zip")


def test_validate_archive_not_a_zip(tmp_path):
    path = tmp_path / "bad.zip"
    path.write_text("not a zip")
    with pytest.raises(BuildError, match="failed to open archive"):
        validate_archive(path)


def test_generate_package_metadata(tmp_path):
    generate_package_metadata(tmp_path, tmp_path)
    data = json.loads((tmp_path / "package-metadata.json").read_text())
    assert data["name"] == "pb-cli"
    assert data["version"] == "1.0.0"
    assert data["buildType"] == "production"
    assert data["contents"] == ["server binary", "frontend assets", "build metadata"]
    assert set(data["environment"]) == {"go", "node", "npm"}
    assert set(data["git"]) == {"branch", "commit", "tag"}

    info = (tmp_path / "build-info.txt").read_text()
    assert info.startswith("pb-cli Production Build\n")
    assert "Build Type: Production" in info
    assert "  - pb-cli server binary" in info


def test_generate_package_metadata_missing_dir(tmp_path):
    with pytest.raises(BuildError, match="failed to create build info file"):
        generate_package_metadata(tmp_path, tmp_path / "missing")