import javalang
import pytest

from uml_analyzer.analyzer import JavaSourceAnalyzer
from uml_analyzer.visitor import MethodCallVisitor, is_trusted_type, strip_type, type_names


def analyze(code):
    analyzer = JavaSourceAnalyzer()
    records = analyzer.analyze_source(code, "Test.java")
    return {record.name: record for record in records}


def call_names(code):
    tree = javalang.parse.parse(code)
    method = next(node for _, node in tree.filter(javalang.tree.MethodDeclaration))
    visitor = MethodCallVisitor()
    visitor.visit(method.body)
    return [site.method_name for site in visitor.call_sites]


@pytest.mark.parametrize("type_str, expected", [
    ("Food", ["Food"]),
    ("List<Food>", ["List", "Food"]),
    ("Map<String, List<Food>>", ["Map", "String", "List", "Food"]),
    ("List<? extends Food>", ["List", "Food"]),
    ("List<?>", ["List"]),
    ("Food[]", ["Food"]),
    ("Food...", ["Food"]),
])
def test_type_names(type_str, expected):
    assert type_names(type_str) == expected


def test_strip_type():
    assert strip_type("List<Food>[]") == "List"
    assert strip_type("zoo.Food...") == "zoo.Food"


def test_trusted_types():
    assert is_trusted_type("int")
    assert is_trusted_type("java.lang.String")
    assert is_trusted_type("java.util.concurrent.Future")
    assert not is_trusted_type("Food")
    assert not is_trusted_type("Currency")
    assert not is_trusted_type("java.io.File", ("java.lang.",))


def test_imported_project_type_with_library_name_is_a_dependency():
    record = analyze("""
        package shop;

        import money.Currency;
        import java.util.List;

        public class Wallet {
            private Currency currency;
            private List<Date> history;
            private String owner;
        }
    """)["Wallet"]
    assert record.dependencies == ["Currency", "Date"]


def test_library_types_are_filtered_through_imports():
    record = analyze("""
        package shop;

        import java.util.Currency;
        import java.util.*;

        public class Till {
            private Currency currency;
            private Map<String, Date> opened;
            private Error lastError;
        }
    """)["Till"]
    assert record.dependencies == []


def test_type_declared_in_the_unit_shadows_java_lang():
    records = analyze("""
        package audit;

        public class Log {
            private Record last;

            public static class Record {
            }
        }
    """)
    assert records["Log"].dependencies == ["Record"]


def test_trusted_prefixes_apply_to_qualified_names():
    analyzer = JavaSourceAnalyzer(trusted_prefixes=("java.lang.",))
    (record,) = analyzer.analyze_source("""
        import java.util.List;

        public class Inbox {
            private List<String> messages;
        }
    """)
    assert record.dependencies == ["List"]


def test_primitive_field_is_not_a_dependency():
    records = analyze("public class C { private int x; }")
    record = records["C"]
    assert [str(f) for f in record.fields] == ["-x: int"]
    assert record.dependencies == []


def test_generic_arguments_become_dependencies():
    records = analyze("""
        import java.util.*;

        public class Box<T> {
            private T item;
            private Map<String, List<Food>> index;
            private Bowl[] bowls;

            public Optional<Food> first(Food... extra) {
                return null;
            }
        }
    """)
    record = records["Box"]
    assert record.dependencies == ["Food", "Bowl"]
    assert [str(f) for f in record.fields] == [
        "-item: T",
        "-index: Map<String, List<Food>>",
        "-bowls: Bowl[]",
    ]
    assert str(record.methods[0]) == "+first(extra: Food...): Optional<Food>"


def test_dependency_extraction_is_idempotent():
    code = """
        public class Cat extends Animal implements Pet, Pet2 {
            private Food food;
            private Food other;
            public Toy toy(Food f, Toy t) { return t; }
        }
    """
    first = analyze(code)["Cat"].dependencies
    second = analyze(code)["Cat"].dependencies
    assert first == second == ["Animal", "Pet", "Pet2", "Food", "Toy"]


def test_class_declaration_details():
    records = analyze("""
        package zoo;

        public abstract class Cat extends Animal implements Pet {
            protected static int count;
            String nickname;

            public Cat(String name, int age) {
            }

            public abstract void meow();

            private static Cat create() {
                return null;
            }
        }
    """)
    record = records["Cat"]
    assert record.package == "zoo"
    assert record.is_abstract
    assert record.superclass == "Animal"
    assert record.interfaces == ["Pet"]
    assert [str(f) for f in record.fields] == ["#count: int", "~nickname: String"]
    assert [str(m) for m in record.methods] == [
        "+meow()",
        "-create(): Cat",
        "+Cat(name: String, age: int)",
    ]
    assert record.methods[0].is_abstract
    assert record.methods[1].is_static
    assert record.methods[2].is_constructor


def test_interface_keeps_last_extended_interface():
    record = analyze("public interface C extends A, B { }")["C"]
    assert record.is_interface
    assert record.superclass == "B"
    assert record.dependencies == ["A", "B"]


def test_enum_constants_and_members():
    record = analyze("""
        public enum FoodType implements Labeled {
            MEAT, FISH;

            private Food sample;

            public boolean isDry() {
                return false;
            }
        }
    """)["FoodType"]
    assert record.is_enum
    assert record.interfaces == ["Labeled"]
    assert [str(f) for f in record.fields] == ["+MEAT: FoodType", "+FISH: FoodType", "-sample: Food"]
    assert [m.name for m in record.methods] == ["isDry"]
    assert record.dependencies == ["Labeled", "Food"]


def test_nested_types_are_extracted():
    records = analyze("""
        public class Outer {
            private Inner inner;

            static class Inner {
                private int value;
            }
        }
    """)
    assert set(records) == {"Outer", "Inner"}
    assert records["Outer"].dependencies == ["Inner"]


def test_calls_are_recorded_in_completion_order():
    names = call_names("""
        class T {
            void m() {
                a(b(), c()).d();
                list.forEach(x -> helper(x));
                if (ready()) {
                    done();
                }
            }
        }
    """)
    assert names == ["b", "c", "a", "d", "helper", "forEach", "ready", "done"]


def test_chained_calls_keep_their_receivers():
    tree = javalang.parse.parse("class T { void m() { this.friend.play(); } }")
    method = next(node for _, node in tree.filter(javalang.tree.MethodDeclaration))
    visitor = MethodCallVisitor()
    visitor.visit(method.body)

    (site,) = visitor.call_sites
    assert site.method_name == "play"
    assert isinstance(site.chain[0], javalang.tree.This)
    assert site.chain[1].member == "friend"
