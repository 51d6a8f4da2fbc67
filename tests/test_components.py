from conftest import write_sources
from uml_analyzer.analyzer import JavaSourceAnalyzer
from uml_analyzer.components import ComponentAnalyzer
from uml_analyzer.models import TypeRecord
from uml_analyzer.plantuml import generate_class_diagram


def analyze_components(source_root):
    types = JavaSourceAnalyzer().analyze_directory(str(source_root))
    return ComponentAnalyzer().analyze_components(types)


def test_interface_and_implementation_in_two_packages(component_project):
    components = analyze_components(component_project)

    assert set(components) == {"p1", "p2"}
    p1, p2 = components["p1"], components["p2"]
    assert p1.interfaces == {"A"}
    assert p1.provided_interfaces == {"A"}
    assert p1.dependencies == set()
    assert p2.classes == {"B"}
    assert p2.dependencies == {"p1"}
    assert p2.required_interfaces == {"A"}


def test_no_self_loops(zoo_project):
    components = analyze_components(zoo_project)

    assert set(components) == {"zoo", "zoo.food"}
    for name, component in components.items():
        assert name not in component.dependencies
    assert components["zoo"].dependencies == {"zoo.food"}
    assert components["zoo"].required_interfaces == {"Edible"}
    assert components["zoo.food"].dependencies == set()


def test_unresolved_dependencies_produce_no_edges():
    record = TypeRecord("C", dependencies=["ExternalLib", "Other"])
    components = ComponentAnalyzer().analyze_components({"C": record})

    assert set(components) == {"(default)"}
    assert components["(default)"].classes == {"C"}
    assert components["(default)"].dependencies == set()


def test_project_type_named_like_a_library_type(tmp_path):
    source_root = write_sources(tmp_path / "src", {
        "money/Currency.java": "package money; public class Currency {}",
        "shop/Wallet.java": "package shop; import money.Currency; public class Wallet { private Currency c; }",
    })
    types = JavaSourceAnalyzer().analyze_directory(str(source_root))
    components = ComponentAnalyzer().analyze_components(types)

    assert types["shop.Wallet"].dependencies == ["Currency"]
    assert components["shop"].dependencies == {"money"}
    assert "Wallet ..> Currency : uses" in generate_class_diagram(types).splitlines()
