"""Component data models"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

from ..api.exceptions import ConfigError


class ComponentKind(Enum):
    """Deployable component kinds"""
    WORLD = "world"
    DATAPACK = "datapack"
    PLUGIN = "plugin"
    RESOURCEPACK = "resourcepack"
    MOD = "mod"

    @property
    def short(self) -> str:
        """Prefix used in component ids"""
        return _SHORT_NAMES[self]

    @property
    def plural(self) -> str:
        """Plural name used for staging directories and properties keys"""
        return f"{self.value}s"

    @property
    def default_artifact_type(self) -> 'ArtifactType':
        """Artifact type used when the descriptor does not set one"""
        if self in (ComponentKind.PLUGIN, ComponentKind.MOD):
            return ArtifactType.JAR
        if self in (ComponentKind.DATAPACK, ComponentKind.RESOURCEPACK, ComponentKind.WORLD):
            return ArtifactType.DIR
        return ArtifactType.RAW

    @classmethod
    def from_string(cls, value: str) -> 'ComponentKind':
        """Create ComponentKind from its value, plural form or short id"""
        value = value.lower()
        for kind in cls:
            if value in (kind.value, kind.plural, kind.short):
                return kind
        raise ConfigError(f"Unknown component kind: {value}")


_SHORT_NAMES = {
    ComponentKind.WORLD: "world",
    ComponentKind.DATAPACK: "dp",
    ComponentKind.PLUGIN: "pl",
    ComponentKind.RESOURCEPACK: "rp",
    ComponentKind.MOD: "mod",
}


class ArtifactType(Enum):
    """How the deployable artifact is selected from build output"""
    RAW = "raw"
    DIR = "dir"
    FILE = "file"
    JAR = "jar"
    ZIP = "zip"

    @property
    def extensions(self) -> Tuple[str, ...]:
        """File extensions accepted when scanning for a single file"""
        if self == ArtifactType.JAR:
            return (".jar",)
        if self == ArtifactType.ZIP:
            return (".zip",)
        return ()

    @property
    def is_single_file(self) -> bool:
        """Whether build output is scanned for one file of this type"""
        return self in (ArtifactType.FILE, ArtifactType.JAR, ArtifactType.ZIP)


# Source descriptors

@dataclass(frozen=True)
class LocalSource:
    """Content copied from a local directory or file"""
    path: str
    type: str = field(default="local", init=False)


@dataclass(frozen=True)
class HttpSource:
    """Content downloaded from a URL"""
    url: str
    type: str = field(default="http", init=False)


@dataclass(frozen=True)
class GitSource:
    """Content checked out from a git repository"""
    url: str
    branch: Optional[str] = None
    commit: Optional[str] = None
    type: str = field(default="git", init=False)


SourceConfig = Union[LocalSource, HttpSource, GitSource]


def source_from_dict(data: Dict[str, Any]) -> SourceConfig:
    """Parse a ``source`` descriptor"""
    source_type = data.get("type")
    if source_type == "local":
        if not data.get("path"):
            raise ConfigError("Local source requires 'path'")
        return LocalSource(path=str(data["path"]))
    if source_type == "http":
        if not data.get("url"):
            raise ConfigError("HTTP source requires 'url'")
        return HttpSource(url=data["url"])
    if source_type == "git":
        if not data.get("url"):
            raise ConfigError("Git source requires 'url'")
        commit = data.get("commit")
        return GitSource(
            url=data["url"],
            branch=data.get("branch"),
            commit=str(commit) if commit is not None else None
        )
    raise ConfigError(f"Unknown source type: {source_type}")


def source_to_dict(source: SourceConfig) -> Dict[str, Any]:
    """Serialize a source descriptor, omitting unset fields"""
    if isinstance(source, LocalSource):
        return {"type": "local", "path": source.path}
    if isinstance(source, HttpSource):
        return {"type": "http", "url": source.url}
    data = {"type": "git", "url": source.url}
    if source.branch:
        data["branch"] = source.branch
    if source.commit:
        data["commit"] = source.commit
    return data


# Build descriptors

@dataclass(frozen=True)
class NoBuild:
    """Use the resolved source as the build output"""
    type: str = field(default="none", init=False)


@dataclass(frozen=True)
class GradleBuild:
    """Run a gradle task"""
    task: Optional[str] = None
    output: Optional[str] = None
    type: str = field(default="gradle", init=False)


@dataclass(frozen=True)
class CustomBuild:
    """Run a shell command inside the runner container"""
    command: str
    workdir: Optional[str] = None
    output: Optional[str] = None
    type: str = field(default="custom", init=False)


BuildConfig = Union[NoBuild, GradleBuild, CustomBuild]


def build_from_dict(data: Optional[Dict[str, Any]]) -> BuildConfig:
    """Parse a ``build`` descriptor"""
    if not data:
        return NoBuild()
    build_type = data.get("type", "none")
    if build_type in (None, "none"):
        return NoBuild()
    if build_type == "gradle":
        return GradleBuild(task=data.get("task"), output=data.get("output"))
    if build_type == "custom":
        if not data.get("command"):
            raise ConfigError("Custom build requires 'command'")
        return CustomBuild(
            command=data["command"],
            workdir=data.get("workdir"),
            output=data.get("output")
        )
    raise ConfigError(f"Unknown build type: {build_type}")


def build_to_dict(build: BuildConfig) -> Dict[str, Any]:
    """Serialize a build descriptor, omitting unset fields"""
    data = {"type": build.type}
    for key in ("task", "command", "workdir", "output"):
        value = getattr(build, key, None)
        if value:
            data[key] = value
    return data


@dataclass(frozen=True)
class ArtifactConfig:
    """Rule selecting the artifact to deploy from build output"""
    type: Optional[ArtifactType] = None
    path: Optional[str] = None
    pattern: Optional[str] = None
    unzip: bool = False

    def effective_type(self, kind: ComponentKind) -> ArtifactType:
        return self.type or kind.default_artifact_type

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ArtifactConfig':
        """Parse an ``artifact`` descriptor"""
        if not data:
            return cls()
        artifact_type = None
        if data.get("type"):
            try:
                artifact_type = ArtifactType(data["type"])
            except ValueError:
                raise ConfigError(f"Unknown artifact type: {data['type']}")
        return cls(
            type=artifact_type,
            path=data.get("path"),
            pattern=data.get("pattern"),
            unzip=bool(data.get("unzip", False))
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        if self.type:
            data["type"] = self.type.value
        if self.path:
            data["path"] = self.path
        if self.pattern:
            data["pattern"] = self.pattern
        if self.unzip:
            data["unzip"] = True
        return data


@dataclass(frozen=True)
class Component:
    """A deployable unit of the server tree

    Components are owned by the project configuration; the deployment
    pipeline only reads them.
    """

    kind: ComponentKind
    name: str
    source: Optional[SourceConfig] = None
    build: BuildConfig = field(default_factory=NoBuild)
    artifact: ArtifactConfig = field(default_factory=ArtifactConfig)

    def __post_init__(self):
        if self.kind != ComponentKind.WORLD and not self.name:
            raise ConfigError(f"{self.kind.value} component requires a name")

    @property
    def component_id(self) -> str:
        """Stable id used as the deployment manifest key"""
        if self.kind == ComponentKind.WORLD:
            return "world"
        return f"{self.kind.short}:{self.name}"

    @property
    def label(self) -> str:
        """Display label for progress output"""
        return self.name or self.kind.value

    @property
    def artifact_type(self) -> ArtifactType:
        return self.artifact.effective_type(self.kind)

    @classmethod
    def from_dict(cls, kind: ComponentKind, name: Optional[str], data: Dict[str, Any]) -> 'Component':
        """Create from a properties descriptor

        Args:
            kind: Component kind
            name: Component name (ignored for worlds)
            data: Descriptor mapping with source/build/artifact keys

        Returns:
            Component instance
        """
        data = data or {}
        source_data = data.get("source")
        if source_data is None and isinstance(data.get("reference"), dict):
            # Legacy descriptors carried a bare reference instead of a source
            reference = data["reference"]
            if "path" in reference:
                source_data = {"type": "local", "path": reference["path"]}
            elif "url" in reference:
                source_data = {"type": "http", "url": reference["url"]}

        if kind == ComponentKind.WORLD:
            name = ComponentKind.WORLD.value

        return cls(
            kind=kind,
            name=name or "",
            source=source_from_dict(source_data) if source_data else None,
            build=build_from_dict(data.get("build")),
            artifact=ArtifactConfig.from_dict(data.get("artifact"))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to descriptor dictionary"""
        data: Dict[str, Any] = {}
        if self.source:
            data["source"] = source_to_dict(self.source)
        if not isinstance(self.build, NoBuild):
            data["build"] = build_to_dict(self.build)
        artifact = self.artifact.to_dict()
        if artifact:
            data["artifact"] = artifact
        return data


def parse_component_id(component_id: str) -> Tuple[ComponentKind, Optional[str]]:
    """Split a component id into kind and name"""
    prefix, _, name = component_id.partition(":")
    for kind in ComponentKind:
        if kind.short == prefix:
            return kind, (name or None)
    raise ConfigError(f"Unknown component id: {component_id}")


def staging_path(components_dir: Path, component: Component) -> Path:
    """Local staging directory for a component's raw source"""
    if component.kind == ComponentKind.WORLD:
        return components_dir / ComponentKind.WORLD.value
    return components_dir / component.kind.plural / component.name
