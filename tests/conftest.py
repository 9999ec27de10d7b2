import zipfile

import pytest

from export_builder import export_xml


@pytest.fixture
def make_export(tmp_path):
    def _make(records, as_zip=False):
        xml_text = export_xml(records)
        if not as_zip:
            path = tmp_path / "export.xml"
            path.write_text(xml_text, encoding="utf-8")
            return path
        path = tmp_path / "export.zip"
        with zipfile.ZipFile(path, "w") as zf:
            zf.writestr("apple_health_export/export.xml", xml_text)
        return path
    return _make


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("USER_NAME", "EXPORT_PATH", "TIMEZONE", "DEFAULT_RANGE", "ANCHOR", "LOG_LEVEL"):
        monkeypatch.setenv(f"HEALTHDASH_{name}", "")
        monkeypatch.delenv(f"HEALTHDASH_{name}")
    return monkeypatch
