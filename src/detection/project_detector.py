"""Project configuration detector.

Finds MySQL connection settings in the configuration files of common project
layouts (Spring Boot, Node.js, Laravel, Django) and generic JSON/YAML/.env
files.
"""

import io
import json
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
from urllib.parse import parse_qsl

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError

from database.models import MySQLConnectionConfig

logger = logging.getLogger(__name__)

DEFAULT_MYSQL_PORT = 3306

_JDBC_URL_PATTERN = re.compile(
    r"jdbc:(?:mysql|mariadb)://(?P<host>[^:/?;,]+)(?::(?P<port>\d+))?/(?P<database>[^?;/]+)(?:\?(?P<query>[^;]*))?"
)
_JDBC_TLS_MODES = {"REQUIRED", "VERIFY_CA", "VERIFY_IDENTITY"}
_SPRING_FILE_PATTERN = re.compile(r"^application-(.+)\.(yml|yaml|properties)$")
_ENV_FILE_PATTERN = re.compile(r"^\.env\.(.+)$")
_DJANGO_SETTINGS_PATTERN = re.compile(r"^settings[_\-.]?(.*)\.py$")

SPRING_RESOURCES = Path("src/main/resources")
NODE_ENV_FILES = [".env", ".env.local", ".env.development", ".env.test", ".env.production"]
GENERIC_CONFIG_FILES = [".env", "config.json", "config.yml", "config.yaml"]
IGNORED_DIRS = {".git", ".venv", "venv", "env", "node_modules", "__pycache__", "site-packages", "vendor"}


class ProjectType(str, Enum):
    SPRING_BOOT = "spring-boot"
    NODE_JS = "node-js"
    LARAVEL = "laravel"
    DJANGO = "django"
    GENERIC = "generic"


class ProjectEnvironment(BaseModel):
    """A named set of connection parameters found in (or supplied to) a project."""

    name: str
    display_name: str
    config: MySQLConnectionConfig
    source: str
    type: Literal["detected", "manual"] = "detected"


class ProjectInfo(BaseModel):
    type: ProjectType
    root_path: str
    environments: List[ProjectEnvironment] = Field(default_factory=list)
    config_files: List[str] = Field(default_factory=list)

    def find_environment(self, name: str) -> Optional[ProjectEnvironment]:
        for environment in self.environments:
            if environment.name == name:
                return environment
        return None


def parse_jdbc_url(jdbc_url: Optional[str]) -> Optional[Dict[str, Any]]:
    """Parse jdbc:mysql://host[:port]/database[?params] into its parts."""
    if not jdbc_url:
        return None

    match = _JDBC_URL_PATTERN.search(jdbc_url)
    if not match:
        return None

    query = {key.lower(): value for key, value in parse_qsl(match.group("query") or "")}
    ssl_mode = query.get("sslmode", "").upper()
    use_ssl = query.get("usessl", "").lower() == "true" or ssl_mode in _JDBC_TLS_MODES

    return {
        "host": match.group("host"),
        "port": int(match.group("port") or DEFAULT_MYSQL_PORT),
        "database": match.group("database"),
        "ssl": True if use_ssl else None
    }


def parse_properties(content: str) -> Dict[str, str]:
    """Parse a Java .properties file (key=value, # comments)."""
    props = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "!")):
            continue
        key, sep, value = line.partition("=")
        if sep and key.strip():
            props[key.strip()] = value.strip()
    return props


def parse_env_file(content: str) -> Dict[str, str]:
    """Parse .env content; keys without a value are dropped."""
    values = dotenv_values(stream=io.StringIO(content), interpolate=False)
    return {key: value for key, value in values.items() if value is not None}


def extract_environment_name(config_file: str) -> str:
    """Derive the environment name from a config file name.

    application-dev.yml -> dev, .env.production -> production,
    application.yml -> default, .env -> local, settings_prod.py -> prod.
    """
    basename = Path(config_file).name

    spring_match = _SPRING_FILE_PATTERN.match(basename)
    if spring_match:
        return spring_match.group(1)

    env_match = _ENV_FILE_PATTERN.match(basename)
    if env_match:
        return env_match.group(1)

    if basename in ("application.yml", "application.yaml", "application.properties"):
        return "default"

    if basename == ".env":
        return "local"

    django_match = _DJANGO_SETTINGS_PATTERN.match(basename)
    if django_match:
        return django_match.group(1) or "default"

    return Path(basename).stem


def _to_port(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return DEFAULT_MYSQL_PORT


def _bracketed_block(text: str, open_index: int, open_char: str = "{", close_char: str = "}") -> str:
    """Return the text between the bracket at open_index and its match."""
    depth = 0
    for index in range(open_index, len(text)):
        char = text[index]
        if char == open_char:
            depth += 1
        elif char == close_char:
            depth -= 1
            if depth == 0:
                return text[open_index + 1:index]
    return text[open_index + 1:]


def _literal_or_default(expression: str) -> Optional[str]:
    """Value of a config expression: a string/number literal, or the default of
    an env lookup such as env('DB_HOST', '127.0.0.1') or os.getenv('X', 'y')."""
    expression = expression.strip().rstrip(",").strip()

    literal = re.match(r"""^(['"])(.*?)\1""", expression)
    if literal:
        return literal.group(2)

    number = re.match(r"^(\d+)\b", expression)
    if number:
        return number.group(1)

    default = re.search(r"""\(\s*['"][^'"]+['"]\s*,\s*(['"]?)([^'")]*)\1\s*\)""", expression)
    if default:
        return default.group(2)

    return None


class ProjectDetector:
    """Detects project type and database environments under a root directory."""

    def __init__(self, root_path: Optional[Union[str, Path]] = None):
        self.root_path = Path(root_path).expanduser().resolve() if root_path else Path.cwd()

    def detect_project(self) -> ProjectInfo:
        """Detect project type, config files and environments."""
        project_type = self.detect_project_type()
        config_files = self.find_config_files(project_type)
        environments = self.parse_environments(project_type, config_files)

        logger.info(
            f"Detected {project_type.value} project at {self.root_path}: "
            f"{len(config_files)} config files, {len(environments)} environments"
        )
        return ProjectInfo(
            type=project_type,
            root_path=str(self.root_path),
            environments=environments,
            config_files=config_files
        )

    def detect_project_type(self) -> ProjectType:
        if self._exists("pom.xml") or self._exists("build.gradle"):
            if self._exists(SPRING_RESOURCES / "application.yml") or \
                    self._exists(SPRING_RESOURCES / "application.yaml"):
                return ProjectType.SPRING_BOOT

        if self._exists("package.json"):
            return ProjectType.NODE_JS

        if self._exists("artisan") and self._exists("composer.json"):
            return ProjectType.LARAVEL

        if self._exists("manage.py") or self._exists("settings.py"):
            return ProjectType.DJANGO

        return ProjectType.GENERIC

    def find_config_files(self, project_type: ProjectType) -> List[str]:
        """Config files relative to the root, in parse order."""
        if project_type == ProjectType.SPRING_BOOT:
            return self._find_spring_boot_configs()
        if project_type == ProjectType.NODE_JS:
            return self._existing(NODE_ENV_FILES)
        if project_type == ProjectType.LARAVEL:
            return self._existing([".env", "config/database.php"])
        if project_type == ProjectType.DJANGO:
            return self._find_django_configs() + self._existing([".env"])
        return self._existing(GENERIC_CONFIG_FILES)

    def parse_environments(self, project_type: ProjectType, config_files: List[str]) -> List[ProjectEnvironment]:
        environments: List[ProjectEnvironment] = []
        seen = set()

        for config_file in config_files:
            try:
                parsed = self.parse_config_file(project_type, config_file)
            except (OSError, UnicodeDecodeError, ValueError, yaml.YAMLError) as e:
                logger.warning(f"Failed to parse config file {config_file}: {e}")
                continue

            for environment in parsed:
                if environment.name in seen:
                    logger.warning(
                        f"Duplicate environment '{environment.name}' in {config_file}, keeping the first one"
                    )
                    continue
                seen.add(environment.name)
                environments.append(environment)

        return environments

    def parse_config_file(self, project_type: ProjectType, config_file: str) -> List[ProjectEnvironment]:
        content = (self.root_path / config_file).read_text(encoding="utf-8")
        basename = Path(config_file).name

        if project_type == ProjectType.SPRING_BOOT:
            return self.parse_spring_boot_config(config_file, content)
        if basename.startswith(".env"):
            return self.parse_env_config(config_file, content)
        if basename == "database.php":
            return self.parse_laravel_database_config(config_file, content)
        if basename.endswith(".py"):
            return self.parse_django_settings(config_file, content)
        return self.parse_generic_config(config_file, content)

    def parse_spring_boot_config(self, config_file: str, content: str) -> List[ProjectEnvironment]:
        if config_file.endswith((".yml", ".yaml")):
            datasource = None
            # Multi-document files: the first document with a datasource wins
            for document in yaml.safe_load_all(content):
                spring = document.get("spring") if isinstance(document, dict) else None
                candidate = spring.get("datasource") if isinstance(spring, dict) else None
                if isinstance(candidate, dict):
                    datasource = candidate
                    break
            if datasource is None:
                return []
            url = datasource.get("url") or datasource.get("jdbc-url")
            user = datasource.get("username") or datasource.get("user")
            password = datasource.get("password")
        else:
            props = parse_properties(content)
            url = props.get("spring.datasource.url") or props.get("spring.datasource.jdbc-url")
            user = props.get("spring.datasource.username") or props.get("spring.datasource.user")
            password = props.get("spring.datasource.password")

        db_config = parse_jdbc_url(url)
        if not db_config:
            return []

        env = extract_environment_name(config_file)
        return [ProjectEnvironment(
            name=env,
            display_name=f"{env} (Spring Boot)",
            config=MySQLConnectionConfig(
                host=db_config["host"],
                port=db_config["port"],
                user=str(user or "root"),
                password="" if password is None else str(password),
                database=db_config["database"],
                ssl=db_config["ssl"]
            ),
            source=config_file
        )]

    def parse_env_config(self, config_file: str, content: str) -> List[ProjectEnvironment]:
        env_vars = parse_env_file(content)

        host = env_vars.get("DB_HOST") or env_vars.get("MYSQL_HOST") or "localhost"
        port = _to_port(env_vars.get("DB_PORT") or env_vars.get("MYSQL_PORT") or DEFAULT_MYSQL_PORT)
        database = env_vars.get("DB_DATABASE") or env_vars.get("MYSQL_DATABASE") or env_vars.get("DB_NAME")
        user = env_vars.get("DB_USERNAME") or env_vars.get("MYSQL_USER") or env_vars.get("DB_USER") or "root"
        password = env_vars.get("DB_PASSWORD") or env_vars.get("MYSQL_PASSWORD") or ""

        if not database:
            return []

        env = extract_environment_name(config_file)
        return [ProjectEnvironment(
            name=env,
            display_name=f"{env} ({host}:{port}/{database})",
            config=MySQLConnectionConfig(host=host, port=port, user=user, password=password, database=database),
            source=config_file
        )]

    def parse_laravel_database_config(self, config_file: str, content: str) -> List[ProjectEnvironment]:
        """Read the env() defaults of the 'mysql' connection in config/database.php."""
        match = re.search(r"""['"]mysql['"]\s*=>\s*(\[|array\s*\()""", content)
        if not match:
            return []
        if match.group(1) == "[":
            block = _bracketed_block(content, match.end() - 1, "[", "]")
        else:
            block = _bracketed_block(content, match.end() - 1, "(", ")")

        values = {}
        for key in ("host", "port", "database", "username", "password"):
            line = re.search(rf"""['"]{key}['"]\s*=>\s*([^\n]+)""", block)
            if line:
                values[key] = _literal_or_default(line.group(1))

        if not values.get("database"):
            return []

        env = extract_environment_name(config_file)
        return [ProjectEnvironment(
            name=env,
            display_name=f"{env} (Laravel)",
            config=MySQLConnectionConfig(
                host=values.get("host") or "localhost",
                port=_to_port(values.get("port")),
                user=values.get("username") or "root",
                password=values.get("password") or "",
                database=values["database"]
            ),
            source=config_file
        )]

    def parse_django_settings(self, config_file: str, content: str) -> List[ProjectEnvironment]:
        """Read MySQL aliases from a DATABASES = {...} dict."""
        env = extract_environment_name(config_file)
        environments = []

        for alias, block in self._django_database_blocks(content):
            engine = self._django_value(block, "ENGINE") or ""
            name = self._django_value(block, "NAME")
            if "mysql" not in engine or not name:
                continue

            env_name = env if alias == "default" else f"{env}-{alias}"
            environments.append(ProjectEnvironment(
                name=env_name,
                display_name=f"{env_name} (Django)",
                config=MySQLConnectionConfig(
                    host=self._django_value(block, "HOST") or "localhost",
                    port=_to_port(self._django_value(block, "PORT")),
                    user=self._django_value(block, "USER") or "root",
                    password=self._django_value(block, "PASSWORD") or "",
                    database=name
                ),
                source=config_file
            ))

        return environments

    def parse_generic_config(self, config_file: str, content: str) -> List[ProjectEnvironment]:
        if config_file.endswith(".json"):
            config = json.loads(content)
        elif config_file.endswith((".yml", ".yaml")):
            config = yaml.safe_load(content)
        else:
            return []

        environments = []
        for name, db_config in self.extract_database_configs(config):
            environments.append(ProjectEnvironment(
                name=name,
                display_name=f"{name} ({config_file})",
                config=db_config,
                source=config_file
            ))
        return environments

    def extract_database_configs(self, config: Any) -> List[Tuple[str, MySQLConnectionConfig]]:
        """Recursively find mappings with host and database (or db)."""
        found: List[Tuple[str, MySQLConnectionConfig]] = []

        def search(node: Any, path: List[str]):
            if isinstance(node, dict):
                database = node.get("database") or node.get("db")
                if node.get("host") and isinstance(database, (str, int)):
                    try:
                        found.append((".".join(path) or "default", MySQLConnectionConfig(
                            host=str(node["host"]),
                            port=_to_port(node.get("port", DEFAULT_MYSQL_PORT)),
                            user=str(node.get("user") or node.get("username") or "root"),
                            password=str(node.get("password") or ""),
                            database=str(database)
                        )))
                    except ValidationError as e:
                        logger.debug(f"Skipping config at {'.'.join(path)}: {e}")
                for key, value in node.items():
                    search(value, path + [str(key)])
            elif isinstance(node, list):
                for index, value in enumerate(node):
                    search(value, path + [str(index)])

        search(config, [])
        return found

    def _django_database_blocks(self, content: str) -> List[Tuple[str, str]]:
        match = re.search(r"DATABASES\s*=\s*\{", content)
        if not match:
            return []
        body = _bracketed_block(content, match.end() - 1)

        blocks = []
        position = 0
        for alias_match in re.finditer(r"""['"]([\w\-]+)['"]\s*:\s*\{""", body):
            if alias_match.start() < position:
                continue  # nested dict such as OPTIONS
            open_index = alias_match.end() - 1
            block = _bracketed_block(body, open_index)
            blocks.append((alias_match.group(1), block))
            position = open_index + len(block) + 2
        return blocks

    def _django_value(self, block: str, key: str) -> Optional[str]:
        match = re.search(rf"""['"]{key}['"]\s*:\s*([^\n]+)""", block)
        return _literal_or_default(match.group(1)) if match else None

    def _find_spring_boot_configs(self) -> List[str]:
        configs = []
        resources = self.root_path / SPRING_RESOURCES

        for name in ("application.yml", "application.yaml", "application.properties"):
            if (resources / name).is_file():
                configs.append(str(SPRING_RESOURCES / name))

        if resources.is_dir():
            for suffix in ("yml", "yaml", "properties"):
                for path in sorted(resources.glob(f"application-*.{suffix}")):
                    configs.append(str(SPRING_RESOURCES / path.name))

        return configs

    def _find_django_configs(self) -> List[str]:
        configs = []
        for path in sorted(self.root_path.rglob("settings*.py")):
            relative = path.relative_to(self.root_path)
            if any(part in IGNORED_DIRS for part in relative.parts[:-1]):
                continue
            configs.append(str(relative))
        return configs

    def _existing(self, names: List[str]) -> List[str]:
        return [name for name in names if self._exists(name)]

    def _exists(self, relative_path: Union[str, Path]) -> bool:
        return (self.root_path / relative_path).is_file()
