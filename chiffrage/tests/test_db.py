import os

from sqlalchemy import inspect

from chiffrage.data.db import (
    PACKAGE_DIR,
    engine_from_config,
    resolve_database_url,
    session_factory,
)

TABLES = {
    "dpgf_imports", "dpgf_rows_raw", "dpgf_mappings", "mapping_memory",
    "mapping_templates", "catalogue_items", "supplier_prices", "material_indices",
}


class TestResolveDatabaseUrl:
    def test_memory_untouched(self):
        assert resolve_database_url("sqlite:///:memory:") == "sqlite:///:memory:"

    def test_absolute_path_untouched(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'test.db'}"
        assert resolve_database_url(url) == url

    def test_other_backends_untouched(self):
        url = "postgresql://chiffrage@db/chiffrage"
        assert resolve_database_url(url) == url

    def test_relative_path_anchored_on_package(self, monkeypatch, tmp_path):
        monkeypatch.setattr("chiffrage.data.db.PACKAGE_DIR", str(tmp_path))
        url = resolve_database_url("sqlite:///data/test.db")
        assert url == f"sqlite:///{tmp_path / 'data' / 'test.db'}"
        assert (tmp_path / "data").is_dir()

    def test_package_dir(self):
        assert os.path.basename(PACKAGE_DIR) == "chiffrage"


class TestEngineFromConfig:
    def test_creates_tables(self):
        engine = engine_from_config({"database": {"url": "sqlite:///:memory:"}})
        assert TABLES <= set(inspect(engine).get_table_names())

    def test_without_tables(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'vide.db'}"
        engine = engine_from_config({"database": {"url": url}}, create_tables=False)
        assert inspect(engine).get_table_names() == []
        assert engine.url.database == str(tmp_path / "vide.db")

    def test_session_factory(self, tmp_path):
        engine = engine_from_config({"database": {"url": f"sqlite:///{tmp_path / 'test.db'}"}})
        with session_factory(engine)() as session:
            assert session.bind is engine
