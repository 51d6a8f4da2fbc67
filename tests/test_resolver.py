from uml_analyzer.models import TypeRecord
from uml_analyzer.resolver import TypeIndex, simple_name


def make_index(*records):
    return TypeIndex({record.full_name: record for record in records})


def test_simple_name():
    assert simple_name("com.example.Food") == "Food"
    assert simple_name("Food") == "Food"


def test_find_by_simple_and_full_name():
    food = TypeRecord("Food", "zoo.food")
    index = make_index(food)

    assert index.find("Food") is food
    assert index.find("zoo.food.Food") is food
    assert index.find("other.Food") is None
    assert index.find("Missing") is None
    assert index.find("") is None


def test_ambiguous_simple_name_first_match_wins():
    first = TypeRecord("Item", "a")
    second = TypeRecord("Item", "b")
    index = make_index(first, second)

    assert index.candidates("Item") == [first, second]
    assert index.find("Item") is first
    assert index.find("b.Item") is second


def test_component_of():
    index = make_index(TypeRecord("Food", "zoo.food"), TypeRecord("C"))

    assert index.component_of("Food") == "zoo.food"
    assert index.component_of("C") == "(default)"
    assert index.component_of("String") is None
    assert index.has_simple_name("C")
