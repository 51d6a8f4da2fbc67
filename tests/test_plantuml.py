from uml_analyzer.analyzer import JavaSourceAnalyzer
from uml_analyzer.components import ComponentAnalyzer
from uml_analyzer.models import CallTrace, FieldRecord, TypeRecord
from uml_analyzer.plantuml import (
    class_relationships,
    generate_class_diagram,
    generate_component_diagram,
    generate_sequence_diagram,
    placeholder_participant,
    sanitize_component_name,
    simple_type,
)


def by_full_name(*records):
    return {record.full_name: record for record in records}


def test_private_int_field_line():
    analyzer = JavaSourceAnalyzer()
    analyzer.analyze_source("public class C { private int x; }")
    puml = generate_class_diagram(analyzer.types)

    lines = [line.strip() for line in puml.splitlines()]
    assert "class C {" in lines
    assert "-x: int" in lines
    assert "..>" not in puml
    assert puml.startswith("@startuml\n")
    assert puml.endswith("@enduml\n")


def test_no_duplicate_or_inheritance_uses_edges():
    sub = TypeRecord("Sub", superclass="Base", interfaces=["Iface"],
                     dependencies=["Base", "Iface", "Part", "Part", "Sub", "External"])
    types = by_full_name(sub, TypeRecord("Base"), TypeRecord("Iface", is_interface=True), TypeRecord("Part"))

    assert class_relationships(types) == [
        "Base <|-- Sub",
        "Iface <|.. Sub",
        "Sub ..> Part : uses",
    ]


def test_edges_only_for_types_in_the_model():
    record = TypeRecord("Cat", superclass="Animal", interfaces=["Serializable"], dependencies=["Animal", "Toy"])
    assert class_relationships(by_full_name(record)) == []


def test_packages_sorted_and_default_unwrapped(zoo_project):
    types = JavaSourceAnalyzer().analyze_directory(str(zoo_project))
    types.update(by_full_name(TypeRecord("Loose", fields=[FieldRecord("n", "int", "public")])))
    puml = generate_class_diagram(types)
    lines = puml.splitlines()

    assert lines.index("class Loose {") < lines.index('package "zoo" {') < lines.index('package "zoo.food" {')
    assert "  abstract class Animal {" in lines
    assert "  interface Pet {" in lines
    assert "  enum FoodType {" in lines
    assert "Animal <|-- Cat" in lines
    assert "Pet <|.. Cat" in lines
    assert "Edible <|.. Food" in lines
    assert "Cat ..> Food : uses" in lines
    assert "Cat ..> Animal : uses" not in lines


def test_member_separator_only_between_fields_and_methods(zoo_project):
    types = JavaSourceAnalyzer().analyze_directory(str(zoo_project))
    lines = generate_class_diagram(types).splitlines()

    cat = lines.index("  class Cat {")
    assert lines[cat + 1:cat + 5] == ["    -favorite: Food", "    -toys: List<Toy>", "    --", "    +play()"]
    toy = lines.index("  class Toy {")
    assert lines[toy + 1:toy + 3] == ["    +bounce(): int", "  }"]


def test_component_diagram(component_project):
    types = JavaSourceAnalyzer().analyze_directory(str(component_project))
    puml = generate_component_diagram(ComponentAnalyzer().analyze_components(types))
    lines = puml.splitlines()

    assert 'component "p1" as p1 <<component>> {' in lines
    assert "  interface A" in lines
    assert "p1 -up- () A" in lines
    assert "  [Classes: 1]" in lines
    assert "p2 ..> p1 : uses" in lines
    assert "p1 ..> p2 : uses" not in lines


def test_component_names_are_sanitized():
    assert sanitize_component_name("com.example.app") == "com_example_app"
    assert sanitize_component_name("(default)") == "default"


def test_sequence_quartets_in_trace_order():
    traces = [
        CallTrace("Cat", "Toy", "bounce", "int"),
        CallTrace("Cat", "Animal", "feed", "void"),
        CallTrace("Cat", "Unknown", "println", "void"),
    ]
    lines = generate_sequence_diagram("Cat", "play", traces).splitlines()

    assert lines[:5] == ["@startuml", "skinparam style strictuml", "actor User", "User -> Cat : play()", "activate Cat"]
    assert lines[5:17] == [
        "activate Toy",
        "Cat -> Toy : bounce()",
        "Toy --> Cat : int",
        "deactivate Toy",
        "activate Animal",
        "Cat -> Animal : feed()",
        "Animal --> Cat : void",
        "deactivate Animal",
        "activate println_Target",
        "Cat -> println_Target : println()",
        "println_Target --> Cat : void",
        "deactivate println_Target",
    ]
    assert lines[17:] == ["deactivate Cat", "@enduml"]


def test_placeholder_is_distinct_from_real_participants():
    traces = [
        CallTrace("Cat", "run_Target", "go", "void"),
        CallTrace("Cat", "Unknown", "run", "void"),
    ]
    puml = generate_sequence_diagram("Cat", "play", traces)
    assert "Cat -> run_Target_ : run()" in puml
    assert placeholder_participant("run", {"Cat"}) == "run_Target"


def test_simple_type():
    assert simple_type("java.util.List<com.x.Food>") == "List<Food>"
    assert simple_type("Food") == "Food"
    assert simple_type("") == ""
