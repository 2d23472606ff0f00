from pathlib import Path

import pytest

from src.wasteops.errors import TransportError
from src.wasteops.persistence.filesystem import FileStorage


def test_file_storage_creates_directories(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    assert storage.reports_root == tmp_path.resolve() / "reports"
    assert storage.reports_root.is_dir()
    assert storage.state_root.is_dir()


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    summary_path = storage.state_path("summary.json")
    report_path = storage.report_path("report.csv")

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(report_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert storage.read_json(summary_path) == {"hello": "world"}
    assert report_path.read_text(encoding="utf-8") == "a,b\n1,2\n"
    assert not summary_path.with_suffix(".json.tmp").exists()


def test_read_json_missing_and_corrupt(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    path = storage.state_path("queue.json")

    assert storage.read_json(path) is None

    path.write_text("[1, 2", encoding="utf-8")
    with pytest.raises(TransportError):
        storage.read_json(path)


def test_report_path_rejects_escaping_names(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)

    with pytest.raises(ValueError):
        storage.report_path("../outside.csv")
