"""
Project environment detection for CES.

Inspects the project root to describe the languages, frameworks and
tools in use, loads the capability (MCP) server and agent descriptors
from the .claude directory, and derives a health summary.
"""

import json
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import yaml

from ..models.project import (
    AgentConfig,
    AgentPriority,
    CheckStatus,
    DetectedLanguage,
    EnvironmentSnapshot,
    HealthCheck,
    HealthTier,
    MCPServerConfig,
    MCPServerLaunch,
    ProjectHealth,
    ServerPriority,
    ServerStatus,
)
from ..utils.errors import ConfigurationError
from ..utils.logging import get_logger


logger = get_logger("ces.config.environment")

MCP_CONFIG_FILE = "claude_desktop_config.json"


LANGUAGE_PATTERNS = [
    {
        "name": "TypeScript",
        "emoji": "🔷",
        "files": ["tsconfig.json", "tsconfig.build.json"],
        "extensions": [".ts", ".tsx"],
    },
    {
        "name": "JavaScript",
        "emoji": "🟨",
        "files": ["package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml"],
        "extensions": [".js", ".jsx", ".mjs", ".cjs"],
    },
    {
        "name": "Python",
        "emoji": "🐍",
        "files": ["requirements.txt", "pyproject.toml", "setup.py", "Pipfile", "poetry.lock"],
        "extensions": [".py", ".pyx", ".pyi"],
    },
    {
        "name": "Java",
        "emoji": "☕",
        "files": ["pom.xml", "build.gradle", "build.gradle.kts", "gradlew"],
        "extensions": [".java", ".scala", ".kt"],
    },
    {
        "name": "Rust",
        "emoji": "🦀",
        "files": ["Cargo.toml", "Cargo.lock"],
        "extensions": [".rs"],
    },
    {
        "name": "Go",
        "emoji": "🐹",
        "files": ["go.mod", "go.sum", "go.work"],
        "extensions": [".go"],
    },
    {
        "name": "C#/.NET",
        "emoji": "💜",
        "files": [".csproj", ".sln", ".vbproj", ".fsproj", "global.json"],
        "extensions": [".cs", ".vb", ".fs"],
    },
]

JS_FRAMEWORKS = {
    "react": "React",
    "vue": "Vue.js",
    "angular": "Angular",
    "next": "Next.js",
    "nuxt": "Nuxt.js",
    "express": "Express.js",
    "fastify": "Fastify",
    "nest": "NestJS",
    "svelte": "Svelte",
    "solid-js": "SolidJS",
    "remix": "Remix",
}

PYTHON_FRAMEWORKS = {
    "django": "Django",
    "flask": "Flask",
    "fastapi": "FastAPI",
    "tornado": "Tornado",
    "pyramid": "Pyramid",
    "starlette": "Starlette",
}

PYTHON_REQUIREMENT_FILES = ["requirements.txt", "pyproject.toml", "Pipfile"]

TOOL_FILES = {
    ".gitignore": "Git",
    "Dockerfile": "Docker",
    "docker-compose.yml": "Docker Compose",
    "docker-compose.yaml": "Docker Compose",
    "Makefile": "Make",
    ".editorconfig": "EditorConfig",
    ".prettierrc": "Prettier",
    ".prettierrc.json": "Prettier",
    ".eslintrc.js": "ESLint",
    ".eslintrc.json": "ESLint",
    "jest.config.js": "Jest",
    "jest.config.ts": "Jest",
    "webpack.config.js": "Webpack",
    "vite.config.js": "Vite",
    "vite.config.ts": "Vite",
    "rollup.config.js": "Rollup",
}

CI_PATHS = [".gitlab-ci.yml", "azure-pipelines.yml", ".circleci/config.yml"]

SERVER_PRIORITIES = {
    "context7": ServerPriority.CRITICAL,
    "serena": ServerPriority.CRITICAL,
    "arxiv": ServerPriority.HIGH,
    "mongodb": ServerPriority.HIGH,
    "git": ServerPriority.HIGH,
    "filesystem": ServerPriority.HIGH,
    "sqlite": ServerPriority.HIGH,
    "postgresql": ServerPriority.MEDIUM,
    "playwright": ServerPriority.MEDIUM,
    "kubernetes": ServerPriority.MEDIUM,
    "brave": ServerPriority.LOW,
    "youtube": ServerPriority.LOW,
    "google-drive": ServerPriority.LOW,
    "bigquery": ServerPriority.LOW,
}

_FRONT_MATTER = re.compile(r"^---\r?\n(.*?)\r?\n---", re.DOTALL)


def server_priority(name: str) -> ServerPriority:
    """Priority tier of a capability server by name."""
    return SERVER_PRIORITIES.get(name, ServerPriority.MEDIUM)


class EnvironmentDetector:
    """Describes the project rooted at project_root."""

    def __init__(self, project_root: Path, claude_dir: Optional[Path] = None):
        self.project_root = Path(project_root)
        self.claude_dir = Path(claude_dir) if claude_dir else self.project_root / ".claude"

    @property
    def mcp_config_path(self) -> Path:
        return self.claude_dir / MCP_CONFIG_FILE

    @property
    def agents_dir(self) -> Path:
        return self.claude_dir / "agents"

    def detect(self) -> EnvironmentSnapshot:
        """Detect the project environment.

        Raises:
            ConfigurationError: If the project root cannot be read
        """
        if not self.project_root.is_dir():
            raise ConfigurationError(f"Project root is not a directory: {self.project_root}")

        languages = self.detect_languages()
        snapshot = EnvironmentSnapshot(
            project_root=str(self.project_root),
            project_name=self.project_root.name,
            languages=languages,
            frameworks=self.detect_frameworks(languages),
            tools=self.detect_tools(),
            has_git=(self.project_root / ".git").exists(),
            has_mcp=self.mcp_config_path.exists(),
            has_agents=any(self._agent_files())
        )

        logger.info(
            "environment_detected",
            project=snapshot.project_name,
            languages=[lang.name for lang in languages],
            frameworks=snapshot.frameworks,
            has_git=snapshot.has_git,
            has_mcp=snapshot.has_mcp
        )
        return snapshot

    def detect_languages(self) -> List[DetectedLanguage]:
        """Score languages by marker files and top-level source extensions."""
        try:
            names = sorted(entry.name for entry in self.project_root.iterdir())
        except OSError as e:
            raise ConfigurationError(
                f"Cannot list project root {self.project_root}: {e}",
                cause=e
            ) from e

        detected = []
        for pattern in LANGUAGE_PATTERNS:
            confidence = 0
            found: List[str] = []

            for marker in pattern["files"]:
                if any(marker in name for name in names):
                    found.append(marker)
                    confidence += 30

            for ext in pattern["extensions"]:
                matches = [name for name in names if name.endswith(ext)]
                if matches:
                    found.extend(matches[:3])
                    confidence += min(len(matches) * 10, 50)

            if confidence > 0:
                detected.append(DetectedLanguage(
                    name=pattern["name"],
                    emoji=pattern["emoji"],
                    files=found,
                    extensions=list(pattern["extensions"]),
                    confidence=min(confidence, 100)
                ))

        detected.sort(key=lambda lang: lang.confidence, reverse=True)
        return detected

    def detect_frameworks(self, languages: Iterable[DetectedLanguage]) -> List[str]:
        names = {lang.name for lang in languages}
        frameworks: List[str] = []

        def add(framework: str) -> None:
            if framework not in frameworks:
                frameworks.append(framework)

        if names & {"JavaScript", "TypeScript"}:
            deps = self._package_dependencies()
            for dep, framework in JS_FRAMEWORKS.items():
                if any(dep in name for name in deps):
                    add(framework)

        if "Python" in names:
            for file_name in PYTHON_REQUIREMENT_FILES:
                content = self._read_text(self.project_root / file_name)
                if content is None:
                    continue
                content = content.lower()
                for dep, framework in PYTHON_FRAMEWORKS.items():
                    if dep in content:
                        add(framework)

        if "Java" in names:
            pom = self._read_text(self.project_root / "pom.xml")
            if pom is not None:
                if "spring-boot" in pom:
                    add("Spring Boot")
                if "springframework" in pom:
                    add("Spring Framework")

        return frameworks

    def detect_tools(self) -> List[str]:
        tools: List[str] = []
        for file_name, tool in TOOL_FILES.items():
            if (self.project_root / file_name).exists() and tool not in tools:
                tools.append(tool)

        if any((self.project_root / ci_path).exists() for ci_path in CI_PATHS):
            tools.append("CI/CD")

        return tools

    def load_mcp_servers(self) -> List[MCPServerConfig]:
        """Load capability servers, sorted critical first, all disconnected.

        A missing configuration file yields an empty list.

        Raises:
            ConfigurationError: If the configuration file cannot be parsed
        """
        path = self.mcp_config_path
        if not path.exists():
            logger.warning("mcp_config_missing", path=str(path))
            return []

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to load MCP servers from {path}: {e}",
                cause=e
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"MCP configuration {path} must be a JSON object")

        entries = data.get("mcpServers") or {}
        if not isinstance(entries, dict):
            raise ConfigurationError(f"mcpServers in {path} must be an object")

        servers = []
        for name, launch in entries.items():
            if launch is None:
                launch = {}
            if not isinstance(launch, dict):
                raise ConfigurationError(f"MCP server '{name}' in {path} must be an object")
            servers.append(MCPServerConfig(
                name=name,
                config=MCPServerLaunch.from_dict(launch),
                enabled=True,
                priority=server_priority(name),
                status=ServerStatus.DISCONNECTED
            ))
        servers.sort(key=lambda s: s.priority.order)

        logger.debug("mcp_servers_loaded", count=len(servers))
        return servers

    def load_agents(self) -> List[AgentConfig]:
        """Load agent descriptors from markdown files with front matter."""
        agents = []
        for path in self._agent_files():
            try:
                agent = self.parse_agent_file(path)
            except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
                logger.warning("agent_file_unparsable", path=str(path), error=str(e))
                continue
            if agent is not None:
                agents.append(agent)

        logger.debug("agents_loaded", count=len(agents))
        return agents

    def parse_agent_file(self, path: Path) -> Optional[AgentConfig]:
        """Parse one agent file; None when it has no front matter."""
        match = _FRONT_MATTER.match(path.read_text(encoding="utf-8"))
        if not match:
            return None

        metadata = yaml.safe_load(match.group(1)) or {}
        if not isinstance(metadata, dict):
            return None

        tools = metadata.get("tools") or []
        if isinstance(tools, str):
            tools = [t.strip() for t in tools.split(",") if t.strip()]
        elif not isinstance(tools, list):
            logger.warning("agent_tools_invalid", path=str(path), tools=tools)
            tools = []

        try:
            priority = AgentPriority(str(metadata.get("priority", "medium")).lower())
        except ValueError:
            logger.warning("agent_priority_invalid", path=str(path), priority=metadata.get("priority"))
            priority = AgentPriority.MEDIUM

        color = metadata.get("color")
        return AgentConfig(
            name=str(metadata.get("name") or path.stem),
            file_path=str(path),
            description=str(metadata.get("description") or ""),
            tools=[str(t) for t in tools],
            priority=priority,
            color=str(color) if color is not None else None,
            enabled=True
        )

    def health_check(self, snapshot: Optional[EnvironmentSnapshot] = None) -> ProjectHealth:
        """Derive the tiered health summary for a snapshot."""
        snapshot = snapshot or self.detect()

        languages = HealthCheck(
            status=CheckStatus.PASS if snapshot.languages else CheckStatus.WARNING,
            message=(
                f"{len(snapshot.languages)} programming languages detected"
                if snapshot.languages
                else "No specific programming languages detected"
            ),
            details=[lang.to_dict() for lang in snapshot.languages]
        )
        mcp = HealthCheck(
            status=CheckStatus.PASS if snapshot.has_mcp else CheckStatus.FAIL,
            message="MCP configuration found" if snapshot.has_mcp else "MCP configuration missing"
        )
        agents = HealthCheck(
            status=CheckStatus.PASS if snapshot.has_agents else CheckStatus.WARNING,
            message="Specialized agents available" if snapshot.has_agents else "No specialized agents found"
        )
        git = HealthCheck(
            status=CheckStatus.PASS if snapshot.has_git else CheckStatus.WARNING,
            message="Git repository detected" if snapshot.has_git else "Not a Git repository"
        )
        environment = HealthCheck(
            status=CheckStatus.PASS,
            message=f"Project environment: {snapshot.project_name}",
            details={"frameworks": list(snapshot.frameworks), "tools": list(snapshot.tools)}
        )

        if mcp.status == CheckStatus.FAIL:
            overall = HealthTier.ERROR
        elif CheckStatus.WARNING in (languages.status, agents.status):
            overall = HealthTier.WARNING
        else:
            overall = HealthTier.HEALTHY

        return ProjectHealth(
            overall=overall,
            languages=languages,
            mcp=mcp,
            agents=agents,
            git=git,
            environment=environment
        )

    def _agent_files(self) -> List[Path]:
        if not self.agents_dir.is_dir():
            return []
        return sorted(self.agents_dir.glob("*.md"))

    def _package_dependencies(self) -> Dict[str, str]:
        content = self._read_text(self.project_root / "package.json")
        if content is None:
            return {}
        try:
            package = json.loads(content)
        except ValueError as e:
            logger.warning("package_json_invalid", error=str(e))
            return {}
        deps: Dict[str, str] = {}
        deps.update(package.get("dependencies") or {})
        deps.update(package.get("devDependencies") or {})
        return deps

    def _read_text(self, path: Path) -> Optional[str]:
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("file_unreadable", path=str(path), error=str(e))
            return None


__all__ = [
    'EnvironmentDetector',
    'LANGUAGE_PATTERNS',
    'SERVER_PRIORITIES',
    'server_priority',
]
