"""Tests for loading and saving declared objects."""

from __future__ import annotations

import json
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import pytest
import yaml

from docshape.annotations import Comment, CustomKey, Migration, Variable
from docshape.declarations import FieldDeclaration, TransformedObjectDeclaration
from docshape.errors import InvalidValueError, TransformError
from docshape.formats.json import JsonResolver
from docshape.formats.yaml import YamlResolver
from docshape.names import Names, NameStrategy
from docshape.objects import TransformedObject


class Mode(Enum):
    Survival = "survival"
    Creative = "creative"


class Database(TransformedObject):
    host: Annotated[str, Comment("Database host")] = "localhost"
    pool_size: int = 4


class ServerConfig(TransformedObject, header="Server configuration"):
    name: Annotated[str, Comment("Display name")] = "server"
    port: Annotated[int, Variable("DOCSHAPE_PORT")] = 25565
    mode: Mode = Mode.Survival
    motd: list[str] = ["Welcome"]
    limits: dict[str, int] = {"players": 20}
    database: Database = Database()


class MigratingConfig(TransformedObject, version=5):
    legacy_motd: Annotated[str, Migration(3), CustomKey("motd")] = ""
    message: str = "hello"


class DottedConfig(TransformedObject, names=Names(NameStrategy.DOT_CASE)):
    server_port: int = 80


class Cluster(TransformedObject):
    replicas: list[Database] = []


class Invoice(TransformedObject):
    price: Decimal = Decimal(0)
    issued: datetime = datetime(2000, 1, 1)
    due: date = date(2000, 1, 1)


class StrictYamlResolver(YamlResolver):
    """Rejects negative integers without raising."""

    def is_valid(self, field: FieldDeclaration, value: Any) -> bool:
        return not (isinstance(value, int) and value < 0)


@pytest.fixture
def config() -> ServerConfig:
    return ServerConfig().with_resolver(YamlResolver())


class TestConstruction:
    """Test instance defaults."""

    def test_defaults_are_copied(self) -> None:
        first = ServerConfig()
        second = ServerConfig()
        first.motd.append("extra")
        assert second.motd == ["Welcome"]
        assert first.database is not second.database

    def test_keyword_values(self) -> None:
        assert ServerConfig(port=1).port == 1

    def test_unknown_keyword(self) -> None:
        with pytest.raises(TypeError, match="has no declared fields colour"):
            ServerConfig(colour="red")

    def test_equality(self) -> None:
        assert ServerConfig() == ServerConfig()
        assert ServerConfig(port=1) != ServerConfig()

    def test_resolver_required(self) -> None:
        with pytest.raises(TransformError, match="No resolver attached"):
            ServerConfig().save_to_string()


class TestYamlRoundTrip:
    """Test saving and loading YAML documents."""

    def test_save_writes_comments_and_values(self, config: ServerConfig) -> None:
        text = config.save_to_string()
        assert text.startswith("# Server configuration\n\nversion: 1\n")
        assert "# Display name\nname: server\n" in text
        assert "mode: Survival\n" in text
        assert "database:\n  # Database host\n  host: localhost\n" in text
        assert yaml.safe_load(text) == {
            "version": 1,
            "name": "server",
            "port": 25565,
            "mode": "Survival",
            "motd": ["Welcome"],
            "limits": {"players": 20},
            "database": {"host": "localhost", "pool_size": 4},
        }

    def test_load_converts_values(self, config: ServerConfig) -> None:
        config.load_from_string(
            "name: lobby\n"
            "port: '25570'\n"
            "mode: CREATIVE\n"
            "limits:\n  players: 50\n"
            "database:\n  host: db.internal\n",
        )
        assert config.name == "lobby"
        assert config.port == 25570
        assert config.mode is Mode.Creative
        assert config.limits == {"players": 50}
        assert config.database.host == "db.internal"
        assert config.database.pool_size == 4

    def test_missing_keys_keep_defaults(self, config: ServerConfig) -> None:
        config.load_from_string("name: lobby\n")
        assert config.port == 25565
        assert config.motd == ["Welcome"]

    def test_round_trip(self) -> None:
        source = ServerConfig(name="alpha", port=1, mode=Mode.Creative, motd=["a", "b"])
        text = source.with_resolver(YamlResolver()).save_to_string()
        loaded = ServerConfig().with_resolver(YamlResolver()).load_from_string(text)
        assert loaded == source

    def test_unknown_keys_survive(self, config: ServerConfig) -> None:
        config.load_from_string("name: lobby\nextra: kept\n")
        assert yaml.safe_load(config.save_to_string())["extra"] == "kept"

    def test_unknown_nested_keys_survive(self, config: ServerConfig) -> None:
        config.load_from_string("database:\n  host: db\n  ssl: true\n")
        assert yaml.safe_load(config.save_to_string())["database"] == {
            "host": "db",
            "pool_size": 4,
            "ssl": True,
        }

    def test_empty_document(self, config: ServerConfig) -> None:
        config.load_from_string("")
        assert config == ServerConfig()

    def test_non_mapping_document(self, config: ServerConfig) -> None:
        with pytest.raises(TransformError, match="expected a mapping"):
            config.load_from_string("- a\n- b\n")

    def test_malformed_document_is_wrapped(self, config: ServerConfig) -> None:
        with pytest.raises(TransformError, match="Failed to load ServerConfig") as info:
            config.load_from_string("name: [unclosed\n")
        assert isinstance(info.value.__cause__, yaml.YAMLError)

    def test_bad_value_is_wrapped(self, config: ServerConfig) -> None:
        with pytest.raises(TransformError, match="Failed to get port") as info:
            config.load_from_string("port: lots\n")
        assert isinstance(info.value.__cause__, ValueError)

    def test_dotted_paths_nest(self) -> None:
        config = DottedConfig().with_resolver(YamlResolver())
        assert yaml.safe_load(config.save_to_string()) == {"version": 1, "server": {"port": 80}}
        config.load_from_string("server:\n  port: 8080\n")
        assert config.server_port == 8080


class TestYamlScalars:
    """Test values PyYAML resolves before conversion."""

    def test_plain_scalars_reach_declared_types(self) -> None:
        invoice = Invoice().with_resolver(YamlResolver())
        invoice.load_from_string("price: 1.5\nissued: 2024-01-01\ndue: 2024-02-01 10:00:00\n")
        assert invoice.price == Decimal("1.5")
        assert invoice.issued == datetime(2024, 1, 1)
        assert type(invoice.due) is date
        assert invoice.due == date(2024, 2, 1)


class TestJson:
    """Test the JSON driver."""

    def test_save(self) -> None:
        config = ServerConfig().with_resolver(JsonResolver())
        document = json.loads(config.save_to_string())
        assert document["version"] == 1
        assert document["mode"] == "Survival"
        assert document["database"] == {"host": "localhost", "pool_size": 4}

    def test_load(self) -> None:
        config = ServerConfig().with_resolver(JsonResolver())
        config.load_from_string('{"port": 7, "motd": ["x"], "limits": {"players": "9"}}')
        assert config.port == 7
        assert config.motd == ["x"]
        assert config.limits == {"players": 9}

    def test_non_string_keys_are_stringified(self) -> None:
        resolver = JsonResolver()
        resolver.set_value("ids", {1: "one"}, None, None)
        assert resolver.document["ids"] == {"1": "one"}


class TestVariables:
    """Test variable overrides."""

    def test_environment_override_is_not_persisted(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        config.load_from_string("port: 25570\n")
        assert config.port == 30000
        assert yaml.safe_load(config.save_to_string())["port"] == 25570

    def test_override_without_document_value(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        config.load_from_string("")
        assert config.port == 30000
        assert yaml.safe_load(config.save_to_string())["port"] == 25565

    def test_supplied_variables(self, config: ServerConfig, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DOCSHAPE_PORT", raising=False)
        config.with_variables({"DOCSHAPE_PORT": "1234"})
        config.load_from_string("port: 5\n")
        assert config.port == 1234

    def test_override_is_logged(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        with caplog.at_level(logging.INFO, logger="docshape.objects"):
            config.load_from_string("")
        assert "Overriding port from variable DOCSHAPE_PORT" in caplog.text

    def test_bad_override(self, config: ServerConfig, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "high")
        with pytest.raises(TransformError, match="variable DOCSHAPE_PORT"):
            config.load_from_string("")

    def test_override_released_when_variable_disappears(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        config.load_from_string("")
        monkeypatch.delenv("DOCSHAPE_PORT")
        config.update()
        assert config.port == 25565

    def test_starting_value_is_taken_at_load(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        config.port = 26000
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        config.load_from_string("")
        assert config.port == 30000
        assert yaml.safe_load(config.save_to_string())["port"] == 26000
        monkeypatch.delenv("DOCSHAPE_PORT")
        config.update()
        assert config.port == 26000


class TestMigration:
    """Test the migration sweep."""

    DOCUMENT = "version: 2\nmotd: old text\nmessage: hi\n"

    def test_sweep_removes_legacy_path(self) -> None:
        config = MigratingConfig().with_resolver(YamlResolver())
        config.load_from_string(self.DOCUMENT)
        assert config.legacy_motd is None
        assert config.message == "hi"
        assert yaml.safe_load(config.save_to_string()) == {"version": 5, "message": "hi"}

    def test_sweep_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        config = MigratingConfig().with_resolver(YamlResolver())
        with caplog.at_level(logging.INFO, logger="docshape.declarations"):
            config.load_from_string(self.DOCUMENT)
        assert "Removing motd migrated at version 3" in caplog.text

    def test_sweep_happens_once(self) -> None:
        resolver = YamlResolver()
        config = MigratingConfig().with_resolver(resolver)
        config.load_from_string(self.DOCUMENT)
        declaration = TransformedObjectDeclaration.of(MigratingConfig)
        field = declaration.fields["motd"]
        assert not field.remove_if_migrated(config, 2, declaration, resolver)

    def test_reload_of_migrated_document_is_noop(self) -> None:
        config = MigratingConfig().with_resolver(YamlResolver())
        config.load_from_string(self.DOCUMENT)
        saved = config.save_to_string()
        again = MigratingConfig().with_resolver(YamlResolver()).load_from_string(saved)
        assert again.save_to_string() == saved

    def test_current_document_keeps_legacy_value(self) -> None:
        config = MigratingConfig().with_resolver(YamlResolver())
        config.load_from_string("version: 5\nmotd: kept\n")
        assert config.legacy_motd == "kept"

    def test_unreadable_version(self) -> None:
        config = MigratingConfig().with_resolver(YamlResolver())
        with pytest.raises(TransformError, match="schema version from version") as info:
            config.load_from_string("version: abc\n")
        assert isinstance(info.value.__cause__, ValueError)


class TestValidation:
    """Test resolver validation hooks."""

    def test_invalid_loaded_value(self) -> None:
        config = ServerConfig().with_resolver(StrictYamlResolver())
        with pytest.raises(InvalidValueError, match="marked port as invalid"):
            config.load_from_string("port: -1\n")

    def test_invalid_saved_value(self) -> None:
        config = ServerConfig(port=-5).with_resolver(StrictYamlResolver())
        with pytest.raises(InvalidValueError, match="StrictYamlResolver marked port"):
            config.save_to_string()


class TestAccess:
    """Test path-based get and set."""

    def test_get_field(self, config: ServerConfig) -> None:
        assert config.get("port") == 25565
        assert config.get("port", str) == "25565"

    def test_get_document_entry(self, config: ServerConfig) -> None:
        config.load_from_string("extra: '12'\n")
        assert config.get("extra") == "12"
        assert config.get("extra", int) == 12
        assert config.get("nothing") is None

    def test_set_converts(self, config: ServerConfig) -> None:
        config.set("port", "26000")
        assert config.port == 26000
        config.set("mode", "creative")
        assert config.mode is Mode.Creative

    def test_set_undeclared(self, config: ServerConfig) -> None:
        config.set("extra", 5)
        assert yaml.safe_load(config.save_to_string())["extra"] == 5

    def test_set_replaces_override(
        self,
        config: ServerConfig,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setenv("DOCSHAPE_PORT", "30000")
        config.load_from_string("port: 1\n")
        config.set("port", 2)
        assert yaml.safe_load(config.save_to_string())["port"] == 2

    def test_set_nested_instance(self, config: ServerConfig) -> None:
        database = Database(host="db.internal")
        config.set("database", database)
        assert config.database is database
        assert yaml.safe_load(config.save_to_string())["database"] == {
            "host": "db.internal",
            "pool_size": 4,
        }

    def test_set_list_of_nested_instances(self) -> None:
        cluster = Cluster().with_resolver(YamlResolver())
        replicas = [Database(host="a"), Database(host="b", pool_size=8)]
        cluster.set("replicas", replicas)
        assert cluster.replicas == replicas
        assert yaml.safe_load(cluster.save_to_string())["replicas"] == [
            {"host": "a", "pool_size": 4},
            {"host": "b", "pool_size": 8},
        ]

    def test_get_all_keys(self, config: ServerConfig) -> None:
        assert config.get_all_keys() == ["name", "port", "mode", "motd", "limits", "database"]

    def test_as_map(self, config: ServerConfig) -> None:
        mapping = config.as_map(config.resolver)
        assert mapping["port"] == "25565"
        assert mapping["database"] == {"host": "localhost", "pool_size": "4"}
        assert config.as_map(config.resolver, conservative=True)["port"] == 25565


class TestFiles:
    """Test file helpers."""

    def test_initiate_creates_file(self, tmp_path: Path) -> None:
        target = tmp_path / "nested" / "server.yml"
        ServerConfig().with_resolver(YamlResolver()).with_file(target).initiate()
        assert target.exists()
        assert yaml.safe_load(target.read_text(encoding="utf-8"))["port"] == 25565

    def test_initiate_loads_and_updates(self, tmp_path: Path) -> None:
        target = tmp_path / "server.yml"
        target.write_text("port: 1\n", encoding="utf-8")
        config = ServerConfig().with_resolver(YamlResolver()).with_file(target).initiate()
        assert config.port == 1
        document = yaml.safe_load(target.read_text(encoding="utf-8"))
        assert document["port"] == 1
        assert document["name"] == "server"

    def test_load_without_update(self, tmp_path: Path) -> None:
        target = tmp_path / "server.yml"
        target.write_text("port: 1\n", encoding="utf-8")
        ServerConfig().with_resolver(YamlResolver()).load(target, update=False)
        assert target.read_text(encoding="utf-8") == "port: 1\n"

    def test_load_missing_file(self, tmp_path: Path) -> None:
        config = ServerConfig().with_resolver(YamlResolver())
        with pytest.raises(TransformError, match="Failed to load") as info:
            config.load(tmp_path / "absent.yml")
        assert isinstance(info.value.__cause__, FileNotFoundError)

    def test_save_defaults_only_when_missing(self, tmp_path: Path) -> None:
        target = tmp_path / "server.yml"
        target.write_text("port: 1\n", encoding="utf-8")
        ServerConfig().with_resolver(YamlResolver()).save_defaults(target)
        assert target.read_text(encoding="utf-8") == "port: 1\n"
        fresh = tmp_path / "fresh.yml"
        ServerConfig().with_resolver(YamlResolver()).save_defaults(fresh)
        assert fresh.exists()

    def test_exists_and_create_file(self, tmp_path: Path) -> None:
        config = ServerConfig().with_file(tmp_path / "a" / "b.yml")
        assert not config.exists()
        config.create_file()
        assert config.exists()

    def test_path_required(self) -> None:
        with pytest.raises(TransformError, match="No file given"):
            ServerConfig().with_resolver(YamlResolver()).save()
