from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol, cast, runtime_checkable


Entity = Literal["regency", "district", "island", "village"]
ENTITIES: tuple[Entity, ...] = ("regency", "district", "island", "village")
DEFAULT_CONFIG_FILENAME = "idnxtr.toml"

DEFAULT_REGEX_TIMEOUT = 0.5
DEFAULT_LINE_BREAK_THRESHOLD = 0.7
DEFAULT_VILLAGE_COLUMN_WIDTH = 26
DEFAULT_BATCH_SIZE = 1000
DEFAULT_FILENAMES: dict[Entity, str] = {
    "regency": "regencies",
    "district": "districts",
    "island": "islands",
    "village": "villages",
}

# --- Models ------------------------------------------------------------


@dataclass
class DataConfig:
    batch_size: int
    filename: str

    def __post_init__(self):
        if self.batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")

        if not self.filename:
            raise ValueError("filename must be a non-empty string")


@dataclass
class ExtractConfig:
    regex_timeout: float = DEFAULT_REGEX_TIMEOUT
    line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD
    village_column_width: int = DEFAULT_VILLAGE_COLUMN_WIDTH

    def __post_init__(self):
        if self.regex_timeout <= 0:
            raise ValueError("regex_timeout must be a positive number")

        if self.line_break_threshold <= 0:
            raise ValueError("line_break_threshold must be a positive number")

        if self.village_column_width <= 0:
            raise ValueError("village_column_width must be a positive integer")


def _default_data() -> dict[Entity, DataConfig]:
    return {
        entity: DataConfig(batch_size=DEFAULT_BATCH_SIZE, filename=filename)
        for entity, filename in DEFAULT_FILENAMES.items()
    }


@dataclass
class Config:
    """Application configuration loaded from TOML file."""

    data: dict[Entity, DataConfig] = field(default_factory=_default_data)
    extract: ExtractConfig = field(default_factory=ExtractConfig)


# --- Errors -----------------------------------------------------------------


class ConfigError(Exception):
    """Raised when the TOML configuration is missing or invalid."""


# --- File loader abstraction (Strategy) ------------------------------------------


@runtime_checkable
class FileLoader(Protocol):
    """Protocol for file loaders that load a file from a given path."""

    def load(self, path: Path) -> dict[str, Any]: ...


# --- Concrete loaders --------------------------------------------------------


class TomlLoader:
    """Loader for TOML files."""

    def load(self, path: Path) -> dict[str, Any]:
        import tomllib

        with path.open("rb") as f:
            return tomllib.load(f)


class AppConfig:
    """Application configuration manager."""

    @classmethod
    def load(
        cls,
        source_path: Path | None = None,
        *,
        loader: FileLoader = TomlLoader(),
    ) -> Config:
        """
        Load configuration.

        If source_path is None, the default file in the working directory is used
        when present, otherwise the built-in defaults are returned.
        """
        if source_path is None:
            default_path = Path.cwd() / DEFAULT_CONFIG_FILENAME
            if not default_path.is_file():
                return Config()
            source_path = default_path

        if not source_path.is_file():
            raise ConfigError(f"Configuration file not found: {source_path}")

        try:
            raw = loader.load(source_path)
        except Exception as e:
            raise ConfigError(e)

        return cls._parse(raw)

    @classmethod
    def _parse(cls, raw: dict[str, Any]) -> Config:
        """Parse raw configuration data, falling back to defaults for missing tables."""
        return Config(data=cls._parse_data(raw.get("data")), extract=cls._parse_extract(raw))

    @classmethod
    def _parse_extract(cls, raw: dict[str, Any]) -> ExtractConfig:
        extract = raw.get("extract", {})

        if not isinstance(extract, dict):
            raise ConfigError("'extract' must be a table")

        extract = cast(dict[str, Any], extract)

        try:
            return ExtractConfig(
                regex_timeout=float(extract.get("regex_timeout", DEFAULT_REGEX_TIMEOUT)),
                line_break_threshold=float(
                    extract.get("line_break_threshold", DEFAULT_LINE_BREAK_THRESHOLD)
                ),
                village_column_width=int(
                    extract.get("village_column_width", DEFAULT_VILLAGE_COLUMN_WIDTH)
                ),
            )
        except (ValueError, TypeError) as e:
            raise ConfigError(e) from e

    @classmethod
    def _parse_data(cls, data: Any) -> dict[Entity, DataConfig]:
        valid_data_config = _default_data()

        if data is None:
            return valid_data_config

        if not isinstance(data, dict):
            raise ConfigError("'data' must be a table")

        data = cast(dict[Any, Any], data)

        for raw_entity, raw_data_config in data.items():
            if raw_entity not in ENTITIES:
                raise ConfigError(
                    f"Unknown entity '{raw_entity}', expected one of {', '.join(ENTITIES)}"
                )

            if not isinstance(raw_data_config, dict):
                raise ConfigError(f"Missing or invalid configuration for entity '{raw_entity}'")

            entity = cast(Entity, raw_entity)
            raw_data_config = cast(dict[str, Any], raw_data_config)

            try:
                valid_data_config[entity] = DataConfig(
                    batch_size=int(raw_data_config.get("batch_size", DEFAULT_BATCH_SIZE)),
                    filename=str(
                        raw_data_config.get("filename", DEFAULT_FILENAMES[entity])
                    ).strip(),
                )
            except (ValueError, TypeError) as e:
                raise ConfigError(e) from e

        return valid_data_config
