from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

DEFAULT_COMPONENT = "(default)"
UNKNOWN_TARGET = "Unknown"

UML_VISIBILITY = {
    'public': '+',
    'private': '-',
    'protected': '#',
}


def uml_visibility(visibility: str) -> str:
    return UML_VISIBILITY.get(visibility, '~')


@dataclass
class ParameterRecord:
    """A single method or constructor parameter."""
    name: str
    type: str

    def __str__(self):
        return f"{self.name}: {self.type}"


@dataclass
class FieldRecord:
    """A field of a Java type. Enum constants are public fields typed by their enum."""
    name: str
    type: str  # as written, e.g. 'List<Food>'
    visibility: str  # public, private, protected, package-private

    @property
    def uml_visibility(self) -> str:
        return uml_visibility(self.visibility)

    def __str__(self):
        return f"{self.uml_visibility}{self.name}: {self.type}"


@dataclass
class MethodRecord:
    """A method of a Java type. Constructors carry the type name and an empty return type."""
    name: str
    return_type: str
    visibility: str
    is_static: bool = False
    is_abstract: bool = False
    parameters: List[ParameterRecord] = field(default_factory=list)

    @property
    def uml_visibility(self) -> str:
        return uml_visibility(self.visibility)

    @property
    def is_constructor(self) -> bool:
        return self.return_type == ""

    def __str__(self):
        params = ", ".join(str(p) for p in self.parameters)
        text = f"{self.uml_visibility}{self.name}({params})"
        if self.return_type and self.return_type != "void":
            text += f": {self.return_type}"
        return text


@dataclass
class TypeRecord:
    """Holds the extracted facts about one class, interface or enum."""
    name: str  # simple name
    package: str = ""  # empty for the unnamed package
    is_interface: bool = False
    is_abstract: bool = False
    is_enum: bool = False
    superclass: Optional[str] = None
    interfaces: List[str] = field(default_factory=list)
    fields: List[FieldRecord] = field(default_factory=list)
    methods: List[MethodRecord] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    file_path: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name

    @property
    def component_name(self) -> str:
        return self.package or DEFAULT_COMPONENT

    @property
    def kind(self) -> str:
        if self.is_enum:
            return "enum"
        if self.is_interface:
            return "interface"
        if self.is_abstract:
            return "abstract class"
        return "class"

    def add_interface(self, interface_name: str):
        if interface_name not in self.interfaces:
            self.interfaces.append(interface_name)

    def add_dependency(self, dependency: str):
        # Ordered set: first reference wins the position.
        if dependency not in self.dependencies:
            self.dependencies.append(dependency)


@dataclass
class ComponentRecord:
    """A package seen as a component with provided and required interfaces."""
    name: str
    classes: Set[str] = field(default_factory=set)
    interfaces: Set[str] = field(default_factory=set)
    dependencies: Set[str] = field(default_factory=set)
    provided_interfaces: Set[str] = field(default_factory=set)
    required_interfaces: Set[str] = field(default_factory=set)


@dataclass(frozen=True)
class CallTrace:
    """One observed method invocation inside a traced method body."""
    source_type: str
    target_type: str  # UNKNOWN_TARGET when the call could not be resolved
    method_name: str
    return_type: str
    depth: int = 0

    @property
    def is_resolved(self) -> bool:
        return self.target_type != UNKNOWN_TARGET


@dataclass(frozen=True)
class Diagnostic:
    """A recovered problem recorded during analysis."""
    kind: str  # parse_failure, read_failure, duplicate_type, resolution_failure
    path: str
    message: str


@dataclass
class AnalysisContext:
    """Everything one extraction run accumulates, passed explicitly to each step."""
    types: Dict[str, TypeRecord] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    trusted_prefixes: tuple = ("java.lang.", "java.util.")

    def add_type(self, record: TypeRecord) -> bool:
        """Store a record by full name. Returns False when it replaced an earlier one."""
        replaced = record.full_name in self.types
        if replaced:
            self.report('duplicate_type', record.file_path or '',
                        f"{record.full_name} declared more than once, keeping the last declaration")
        self.types[record.full_name] = record
        return not replaced

    def report(self, kind: str, path: str, message: str):
        self.diagnostics.append(Diagnostic(kind=kind, path=path, message=message))
