"""Configuration management for Bookstage.

Supports TOML configuration format with auto-discovery.
"""

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from bookstage.core.generator import DEFAULT_CONCURRENCY

CONFIG_FILENAME = "bookstage.toml"


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 3000


@dataclass
class OutputConfig:
    """Artifact output configuration."""

    out_dir: Path = field(default_factory=lambda: Path("target/site"))


@dataclass
class GenerateConfig:
    """Static generation configuration."""

    concurrency: int = DEFAULT_CONCURRENCY
    domain_size: int | None = None


@dataclass
class ServeConfig:
    """Request-time rendering configuration."""

    persist_on_demand: bool = False


@dataclass
class ErrorsConfig:
    """Failure status configuration."""

    server_error_status: int = 404


@dataclass
class CatalogConfig:
    """Book catalog configuration."""

    path: Path | None = None


@dataclass
class Config:
    """Application configuration."""

    server: ServerConfig
    output: OutputConfig
    generate: GenerateConfig
    serve: ServeConfig
    errors: ErrorsConfig
    catalog: CatalogConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> "Config":
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for bookstage.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls._default()

        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents.

        Returns:
            Path to config file or None if not found
        """
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> "Config":
        return cls(
            server=ServerConfig(),
            output=OutputConfig(),
            generate=GenerateConfig(),
            serve=ServeConfig(),
            errors=ErrorsConfig(),
            catalog=CatalogConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            try:
                data = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ValueError(f"Invalid TOML in {path}: {e}") from e

        config_dir = path.parent

        return cls(
            server=cls._parse_server(data.get("server")),
            output=cls._parse_output(data.get("output"), config_dir),
            generate=cls._parse_generate(data.get("generate")),
            serve=cls._parse_serve(data.get("serve")),
            errors=cls._parse_errors(data.get("errors")),
            catalog=cls._parse_catalog(data.get("catalog"), config_dir),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        """Parse server configuration section.

        Args:
            data: Raw server section data

        Returns:
            ServerConfig instance
        """
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 3000)
        if not isinstance(port, int) or isinstance(port, bool):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_output(cls, data: object, config_dir: Path) -> OutputConfig:
        """Parse output configuration section.

        Args:
            data: Raw output section data
            config_dir: Directory containing config file (for relative paths)

        Returns:
            OutputConfig instance
        """
        if data is None:
            return OutputConfig(out_dir=config_dir / "target" / "site")

        if not isinstance(data, dict):
            raise ValueError("output section must be a dictionary")

        out_dir = data.get("out_dir", "target/site")
        if not isinstance(out_dir, str):
            raise ValueError("output.out_dir must be a string")

        return OutputConfig(out_dir=config_dir / out_dir)

    @classmethod
    def _parse_generate(cls, data: object) -> GenerateConfig:
        if data is None:
            return GenerateConfig()

        if not isinstance(data, dict):
            raise ValueError("generate section must be a dictionary")

        concurrency = data.get("concurrency", DEFAULT_CONCURRENCY)
        if not isinstance(concurrency, int) or isinstance(concurrency, bool):
            raise ValueError("generate.concurrency must be an integer")
        if concurrency < 1:
            raise ValueError("generate.concurrency must be at least 1")

        domain_size = data.get("domain_size")
        if domain_size is not None:
            if not isinstance(domain_size, int) or isinstance(domain_size, bool):
                raise ValueError("generate.domain_size must be an integer")
            if domain_size < 0:
                raise ValueError("generate.domain_size must not be negative")

        return GenerateConfig(concurrency=concurrency, domain_size=domain_size)

    @classmethod
    def _parse_serve(cls, data: object) -> ServeConfig:
        if data is None:
            return ServeConfig()

        if not isinstance(data, dict):
            raise ValueError("serve section must be a dictionary")

        persist_on_demand = data.get("persist_on_demand", False)
        if not isinstance(persist_on_demand, bool):
            raise ValueError("serve.persist_on_demand must be a boolean")

        return ServeConfig(persist_on_demand=persist_on_demand)

    @classmethod
    def _parse_errors(cls, data: object) -> ErrorsConfig:
        """Parse errors configuration section.

        Args:
            data: Raw errors section data

        Returns:
            ErrorsConfig instance
        """
        if data is None:
            return ErrorsConfig()

        if not isinstance(data, dict):
            raise ValueError("errors section must be a dictionary")

        status = data.get("server_error_status", 404)
        if not isinstance(status, int) or isinstance(status, bool):
            raise ValueError("errors.server_error_status must be an integer")
        if not 400 <= status <= 599:
            raise ValueError("errors.server_error_status must be between 400 and 599")

        return ErrorsConfig(server_error_status=status)

    @classmethod
    def _parse_catalog(cls, data: object, config_dir: Path) -> CatalogConfig:
        if data is None:
            return CatalogConfig()

        if not isinstance(data, dict):
            raise ValueError("catalog section must be a dictionary")

        path = data.get("path")
        if path is None:
            return CatalogConfig()
        if not isinstance(path, str):
            raise ValueError("catalog.path must be a string")

        return CatalogConfig(path=config_dir / path)

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        out_dir: Path | None = None,
        concurrency: int | None = None,
        domain_size: int | None = None,
        server_error_status: int | None = None,
        persist_on_demand: bool | None = None,
    ) -> "Config":
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.

        Returns:
            New Config instance with overrides applied
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        output = self.output
        if out_dir is not None:
            output = replace(self.output, out_dir=out_dir)

        generate = self.generate
        if concurrency is not None or domain_size is not None:
            generate = replace(
                self.generate,
                concurrency=concurrency if concurrency is not None else self.generate.concurrency,
                domain_size=domain_size if domain_size is not None else self.generate.domain_size,
            )

        errors = self.errors
        if server_error_status is not None:
            errors = replace(self.errors, server_error_status=server_error_status)

        serve = self.serve
        if persist_on_demand is not None:
            serve = replace(self.serve, persist_on_demand=persist_on_demand)

        return replace(
            self,
            server=server,
            output=output,
            generate=generate,
            serve=serve,
            errors=errors,
        )
