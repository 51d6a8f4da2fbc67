import textwrap
from pathlib import Path

import pytest

ZOO_SOURCES = {
    "zoo/Animal.java": """
        package zoo;

        public abstract class Animal {
            protected String name;
            private int age;

            public Animal(String name) {
                this.name = name;
            }

            protected void feed() {
            }

            public abstract String sound();
        }
    """,
    "zoo/Pet.java": """
        package zoo;

        public interface Pet {
            void play();
        }
    """,
    "zoo/Toy.java": """
        package zoo;

        public class Toy {
            public int bounce() {
                return 1;
            }
        }
    """,
    "zoo/Cat.java": """
        package zoo;

        import java.util.List;
        import zoo.food.Edible;
        import zoo.food.Food;

        public class Cat extends Animal implements Pet {
            private Food favorite;
            private List<Toy> toys;

            public Cat(String name) {
                super(name);
            }

            public void play() {
                Toy toy = new Toy();
                toy.bounce();
                feed();
                System.out.println("meow");
                favorite.describe();
            }

            public String sound() {
                return "meow";
            }

            public void eat(Edible meal) {
            }
        }
    """,
    "zoo/Dog.java": """
        package zoo;

        public class Dog extends Animal {
            private Cat friend;

            public Dog(String name) {
                super(name);
            }

            public String sound() {
                return "woof";
            }

            public void greet() {
                super.feed();
                this.friend.play();
                friend.sound().length();
                new Toy().bounce();
                getFriend().play();
            }

            public Cat getFriend() {
                return friend;
            }
        }
    """,
    "zoo/food/Edible.java": """
        package zoo.food;

        public interface Edible {
            int calories();
        }
    """,
    "zoo/food/Food.java": """
        package zoo.food;

        public class Food implements Edible {
            private FoodType type;

            public String describe() {
                return type.name();
            }

            public int calories() {
                return 100;
            }
        }
    """,
    "zoo/food/FoodType.java": """
        package zoo.food;

        public enum FoodType {
            MEAT, FISH;

            public boolean isDry() {
                return false;
            }
        }
    """,
}

COMPONENT_SOURCES = {
    "p1/A.java": """
        package p1;

        public interface A {
            void run();
        }
    """,
    "p2/B.java": """
        package p2;

        import p1.A;

        public class B implements A {
            private A delegate;

            public void run() {
            }
        }
    """,
}


def write_sources(root: Path, sources) -> Path:
    for relative_path, code in sources.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(code).lstrip(), encoding="utf-8")
    return root


@pytest.fixture
def zoo_project(tmp_path):
    return write_sources(tmp_path / "src", ZOO_SOURCES)


@pytest.fixture
def component_project(tmp_path):
    return write_sources(tmp_path / "src", COMPONENT_SOURCES)


@pytest.fixture
def no_plantuml(tmp_path, monkeypatch):
    """No jar in the working directory or the environment."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PLANTUML_JAR_PATH", raising=False)
