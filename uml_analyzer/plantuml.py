"""
PlantUML text for class, component and sequence diagrams.

All three generators are pure functions of the extracted model; writing and
rendering the text is left to uml_analyzer.renderer.
"""
import re
from typing import Dict, List

from .models import CallTrace, ComponentRecord, TypeRecord, UNKNOWN_TARGET
from .resolver import TypeIndex, simple_name

_QUALIFIED_NAME = re.compile(r'(?:[A-Za-z_$][\w$]*\.)+([A-Za-z_$][\w$]*)')


def _group_by_package(types: Dict[str, TypeRecord]) -> Dict[str, List[TypeRecord]]:
    packages: Dict[str, List[TypeRecord]] = {}
    for record in types.values():
        packages.setdefault(record.package or "", []).append(record)
    return {name: packages[name] for name in sorted(packages)}


def _class_definition(record: TypeRecord) -> List[str]:
    indent = "  " if record.package else ""
    lines = [f"{indent}{record.kind} {record.name} {{"]
    for field_record in record.fields:
        lines.append(f"{indent}  {field_record}")
    if record.fields and record.methods:
        lines.append(f"{indent}  --")
    for method in record.methods:
        lines.append(f"{indent}  {method}")
    lines.append(f"{indent}}}")
    return lines


def class_relationships(types: Dict[str, TypeRecord]) -> List[str]:
    """Inheritance, realization and `uses` edges between types present in the model."""
    index = TypeIndex(types)
    lines = []
    for record in types.values():
        class_name = record.name
        superclass = simple_name(record.superclass) if record.superclass else None

        if superclass and index.has_simple_name(superclass):
            lines.append(f"{superclass} <|-- {class_name}")

        realized = [simple_name(i) for i in record.interfaces]
        for interface_name in realized:
            if index.has_simple_name(interface_name):
                lines.append(f"{interface_name} <|.. {class_name}")

        processed = set()
        for dependency in record.dependencies:
            target = simple_name(dependency)
            if target in processed or target == superclass or target in realized:
                continue
            if target == class_name or not index.has_simple_name(target):
                continue
            lines.append(f"{class_name} ..> {target} : uses")
            processed.add(target)
    return lines


def generate_class_diagram(types: Dict[str, TypeRecord]) -> str:
    """
    Class diagram: one block per type grouped into sorted packages (the
    unnamed package is left unwrapped), followed by the relationships.
    """
    uml = [
        "@startuml",
        "skinparam classAttributeIconSize 0",
        "skinparam classFontSize 12",
        "skinparam packageStyle rectangle",
        "left to right direction",
        "",
    ]
    for package_name, records in _group_by_package(types).items():
        if package_name:
            uml.append(f'package "{package_name}" {{')
        for record in records:
            uml.extend(_class_definition(record))
            uml.append("")
        if package_name:
            uml.append("}")
            uml.append("")

    uml.append("")
    uml.append("' Relationships")
    uml.extend(class_relationships(types))
    uml.append("@enduml")
    return "\n".join(uml) + "\n"


def sanitize_component_name(name: str) -> str:
    return name.replace(".", "_").replace("(", "").replace(")", "")


def generate_component_diagram(components: Dict[str, ComponentRecord]) -> str:
    uml = [
        "@startuml",
        "skinparam componentStyle rectangle",
        "skinparam component {",
        "  BackgroundColor<<component>> LightBlue",
        "  BorderColor DarkBlue",
        "  FontSize 12",
        "}",
        "left to right direction",
        "",
    ]
    ordered = [components[name] for name in sorted(components)]

    for component in ordered:
        alias = sanitize_component_name(component.name)
        uml.append(f'component "{component.name}" as {alias} <<component>> {{')
        if component.provided_interfaces:
            uml.append("  [Provided Interfaces]")
            for interface_name in sorted(component.provided_interfaces):
                uml.append(f"  interface {interface_name}")
            uml.append("")
        if component.classes:
            uml.append(f"  [Classes: {len(component.classes)}]")
        uml.append("}")
        for interface_name in sorted(component.provided_interfaces):
            uml.append(f"{alias} -up- () {interface_name}")
        uml.append("")

    uml.append("")
    uml.append("' Component Dependencies")
    for component in ordered:
        alias = sanitize_component_name(component.name)
        for target in sorted(component.dependencies):
            if target in components:
                uml.append(f"{alias} ..> {sanitize_component_name(target)} : uses")
    uml.append("@enduml")
    return "\n".join(uml) + "\n"


def simple_type(type_str: str) -> str:
    """'java.util.List<com.x.Food>' -> 'List<Food>'"""
    if not type_str:
        return ""
    return _QUALIFIED_NAME.sub(r'\1', type_str)


def placeholder_participant(method_name: str, taken) -> str:
    """Participant standing in for the unknown receiver of method_name."""
    name = f"{method_name}_Target"
    while name in taken:
        name += "_"
    return name


def generate_sequence_diagram(entry_type: str, entry_method: str, traces: List[CallTrace],
                              actor: str = "User") -> str:
    """
    Sequence diagram for one traced entry method. Each trace becomes an
    activate / call / return / deactivate quartet, in trace order.
    """
    taken = {entry_type, actor} | {t.target_type for t in traces if t.target_type != UNKNOWN_TARGET}

    uml = [
        "@startuml",
        "skinparam style strictuml",
        f"actor {actor}",
        f"{actor} -> {entry_type} : {entry_method}()",
        f"activate {entry_type}",
    ]
    for trace in traces:
        source = trace.source_type
        target = trace.target_type
        if target == UNKNOWN_TARGET:
            target = placeholder_participant(trace.method_name, taken)
        uml.append(f"activate {target}")
        uml.append(f"{source} -> {target} : {trace.method_name}()")
        uml.append(f"{target} --> {source} : {simple_type(trace.return_type)}")
        uml.append(f"deactivate {target}")
    uml.append(f"deactivate {entry_type}")
    uml.append("@enduml")
    return "\n".join(uml) + "\n"
