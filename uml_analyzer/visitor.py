import javalang
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import AnalysisContext, FieldRecord, MethodRecord, ParameterRecord, TypeRecord

PRIMITIVE_TYPES = frozenset({
    'byte', 'short', 'int', 'long', 'float', 'double', 'boolean', 'char', 'void',
})

DEFAULT_TRUSTED_PREFIXES = ('java.lang.', 'java.util.')

# Types a simple name refers to without an import: java.lang is implicitly
# imported, java.util only through `import java.util.*;`.
JAVA_LANG_NAMES = frozenset({
    'Object', 'String', 'CharSequence', 'StringBuilder', 'StringBuffer',
    'Boolean', 'Byte', 'Character', 'Short', 'Integer', 'Long', 'Float', 'Double',
    'Number', 'Void', 'Math', 'System', 'Class', 'Enum', 'Record', 'Thread',
    'Runnable', 'Iterable', 'Comparable', 'AutoCloseable', 'Cloneable',
    'Throwable', 'Exception', 'RuntimeException', 'Error',
    'IllegalArgumentException', 'IllegalStateException', 'NullPointerException',
    'UnsupportedOperationException', 'IndexOutOfBoundsException',
})

JAVA_UTIL_NAMES = frozenset({
    'Collection', 'List', 'ArrayList', 'LinkedList', 'Vector', 'Stack',
    'Map', 'HashMap', 'LinkedHashMap', 'TreeMap', 'SortedMap', 'NavigableMap',
    'Set', 'HashSet', 'LinkedHashSet', 'TreeSet', 'SortedSet', 'NavigableSet',
    'Queue', 'Deque', 'ArrayDeque', 'PriorityQueue', 'Iterator', 'ListIterator',
    'Optional', 'OptionalInt', 'OptionalLong', 'OptionalDouble',
    'Collections', 'Arrays', 'Objects', 'Comparator', 'Date', 'Calendar',
    'UUID', 'Random', 'Scanner', 'Properties', 'Locale', 'Currency',
})


def get_visibility(modifiers: Optional[Set[str]]) -> str:
    modifiers = modifiers or set()
    if 'public' in modifiers:
        return 'public'
    elif 'private' in modifiers:
        return 'private'
    elif 'protected' in modifiers:
        return 'protected'
    return 'package-private'


def type_to_string(java_type) -> str:
    """Render a javalang type node the way it was written, e.g. 'Map<String, Food>[]'.

    A missing type (the return type of a void method) renders as 'void'.
    """
    if java_type is None:
        return 'void'
    parts = []
    current = java_type
    while current is not None:
        text = current.name
        arguments = getattr(current, 'arguments', None)
        if arguments:
            text += '<' + ', '.join(_type_argument_to_string(a) for a in arguments) + '>'
        parts.append(text)
        current = getattr(current, 'sub_type', None)
    return '.'.join(parts) + '[]' * len(java_type.dimensions or [])


def _type_argument_to_string(argument) -> str:
    if argument.pattern_type in ('extends', 'super'):
        return f"? {argument.pattern_type} {type_to_string(argument.type)}"
    if argument.type is None:
        return '?'
    return type_to_string(argument.type)


def reference_name(reference_type) -> str:
    """Last identifier of a (possibly qualified) reference type: 'com.x.Base<T>' -> 'Base'."""
    current = reference_type
    while getattr(current, 'sub_type', None) is not None:
        current = current.sub_type
    return current.name


def _split_top_level(text: str) -> List[str]:
    parts, depth, start = [], 0, 0
    for i, char in enumerate(text):
        if char == '<':
            depth += 1
        elif char == '>':
            depth -= 1
        elif char == ',' and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    return parts


def strip_type(type_str: str) -> str:
    """Drop the generic suffix, array brackets and varargs dots: 'List<Foo>[]' -> 'List'."""
    text = type_str or ''
    lt = text.find('<')
    if lt != -1:
        text = text[:lt]
    return text.replace('[]', '').replace('...', '').strip()


def type_names(type_str: str) -> List[str]:
    """All type names referenced by a type string, outer type first.

    'Map<String, List<Food>>' -> ['Map', 'String', 'List', 'Food']
    """
    if not type_str:
        return []
    names = []
    base = strip_type(type_str)
    if base.startswith('?'):
        base = ''
    if base:
        names.append(base)
    lt = type_str.find('<')
    gt = type_str.rfind('>')
    if lt != -1 and gt > lt:
        for argument in _split_top_level(type_str[lt + 1:gt]):
            argument = argument.strip()
            if argument.startswith('?'):
                argument = argument[1:].strip()
                for bound in ('extends ', 'super '):
                    if argument.startswith(bound):
                        argument = argument[len(bound):]
            names.extend(type_names(argument))
    return names


def is_trusted_type(full_name: str, trusted_prefixes: Sequence[str] = DEFAULT_TRUSTED_PREFIXES) -> bool:
    """Primitives and fully qualified names under a trusted prefix."""
    return (full_name in PRIMITIVE_TYPES
            or any(full_name.startswith(prefix) for prefix in trusted_prefixes))


def implicit_qualified_name(name: str) -> Optional[str]:
    """'String' -> 'java.lang.String'; None for names that need an import."""
    return 'java.lang.' + name if name in JAVA_LANG_NAMES else None


def add_type_dependency(type_str: str, record: TypeRecord,
                        trusted_prefixes: Sequence[str] = DEFAULT_TRUSTED_PREFIXES,
                        type_parameters: Iterable[str] = (),
                        qualify: Callable[[str], Optional[str]] = implicit_qualified_name):
    """Add every non-trusted type named by type_str to the record's dependencies.

    Simple names are trusted only once `qualify` maps them to a trusted full
    name, so a project type called `Currency` or `Date` stays a dependency.
    """
    for name in type_names(type_str):
        if name in PRIMITIVE_TYPES or name in type_parameters:
            continue
        full_name = name if '.' in name else qualify(name)
        if full_name is not None and is_trusted_type(full_name, trusted_prefixes):
            continue
        record.add_dependency(name)


class JavaTypeVisitor:
    """
    Walks a compilation unit and builds one TypeRecord per class, interface or
    enum declaration, nested declarations included.
    """
    def __init__(self, context: AnalysisContext, file_path: Optional[str] = None):
        self.context = context
        self.file_path = file_path
        self.package_name = ""
        self.imports: Dict[str, str] = {}  # simple_name -> fully_qualified_name
        self.wildcard_imports: Set[str] = set()  # 'java.util' for `import java.util.*;`
        self.unit_types: Set[str] = set()

    def visit_tree(self, tree: javalang.tree.CompilationUnit) -> List[TypeRecord]:
        package_name = tree.package.name if tree.package else ""
        self.package_name = package_name
        self._collect_imports(tree)

        declarations = [node for _, node in tree.filter(javalang.tree.TypeDeclaration)]
        self.unit_types = {node.name for node in declarations}

        records = []
        for node in declarations:
            if isinstance(node, (javalang.tree.ClassDeclaration, javalang.tree.InterfaceDeclaration)):
                records.append(self.visit_class(node, package_name))
            elif isinstance(node, javalang.tree.EnumDeclaration):
                records.append(self.visit_enum(node, package_name))
        return records

    def visit_class(self, node, package_name: str) -> TypeRecord:
        record = TypeRecord(
            name=node.name,
            package=package_name,
            is_interface=isinstance(node, javalang.tree.InterfaceDeclaration),
            is_abstract='abstract' in (node.modifiers or set()),
            file_path=self.file_path,
        )
        type_parameters = self._type_parameter_names(node)

        if record.is_interface:
            # An interface keeps the last interface it extends as its supertype.
            for extended in node.extends or []:
                name = reference_name(extended)
                record.superclass = name
                record.add_dependency(name)
        else:
            if node.extends is not None:
                name = reference_name(node.extends)
                record.superclass = name
                record.add_dependency(name)
            self._visit_implements(node, record)

        for field_decl in node.fields:
            self.visit_field(field_decl, record, type_parameters)
        for method in node.methods:
            self.visit_method(method, record, type_parameters)
        for constructor in node.constructors:
            self.visit_constructor(constructor, record, type_parameters)
        return record

    def visit_enum(self, node: javalang.tree.EnumDeclaration, package_name: str) -> TypeRecord:
        record = TypeRecord(name=node.name, package=package_name, is_enum=True, file_path=self.file_path)
        self._visit_implements(node, record)

        body = node.body
        for constant in (body.constants or []) if body else []:
            record.fields.append(FieldRecord(constant.name, node.name, 'public'))

        declarations = (body.declarations or []) if body else []
        for decl in declarations:
            if isinstance(decl, javalang.tree.FieldDeclaration):
                self.visit_field(decl, record, set())
        for decl in declarations:
            if isinstance(decl, javalang.tree.MethodDeclaration):
                self.visit_method(decl, record, set())
        for decl in declarations:
            if isinstance(decl, javalang.tree.ConstructorDeclaration):
                self.visit_constructor(decl, record, set())
        return record

    def visit_field(self, field_decl: javalang.tree.FieldDeclaration, record: TypeRecord, type_parameters: Set[str]):
        visibility = get_visibility(field_decl.modifiers)
        field_type = type_to_string(field_decl.type)
        self._add_dependency(field_type, record, type_parameters)
        for declarator in field_decl.declarators:
            record.fields.append(FieldRecord(declarator.name, field_type, visibility))

    def visit_method(self, method: javalang.tree.MethodDeclaration, record: TypeRecord, type_parameters: Set[str]):
        modifiers = method.modifiers or set()
        return_type = type_to_string(method.return_type)
        method_record = MethodRecord(
            name=method.name,
            return_type=return_type,
            visibility=get_visibility(modifiers),
            is_static='static' in modifiers,
            is_abstract='abstract' in modifiers,
        )
        scope = type_parameters | self._type_parameter_names(method)
        self._add_dependency(return_type, record, scope)
        self._visit_parameters(method.parameters, method_record, record, scope)
        record.methods.append(method_record)

    def visit_constructor(self, constructor: javalang.tree.ConstructorDeclaration, record: TypeRecord,
                          type_parameters: Set[str]):
        method_record = MethodRecord(
            name=record.name,
            return_type="",
            visibility=get_visibility(constructor.modifiers),
        )
        scope = type_parameters | self._type_parameter_names(constructor)
        self._visit_parameters(constructor.parameters, method_record, record, scope)
        record.methods.append(method_record)

    def _visit_parameters(self, parameters, method_record: MethodRecord, record: TypeRecord, scope: Set[str]):
        for parameter in parameters or []:
            param_type = type_to_string(parameter.type)
            if parameter.varargs:
                param_type += '...'
            method_record.parameters.append(ParameterRecord(parameter.name, param_type))
            self._add_dependency(param_type, record, scope)

    def _visit_implements(self, node, record: TypeRecord):
        for implemented in node.implements or []:
            name = reference_name(implemented)
            record.add_interface(name)
            record.add_dependency(name)

    def _collect_imports(self, tree: javalang.tree.CompilationUnit):
        self.imports, self.wildcard_imports = {}, set()
        for import_decl in tree.imports or []:
            if import_decl.static:
                continue
            if import_decl.wildcard:
                self.wildcard_imports.add(import_decl.path)
            else:
                self.imports[import_decl.path.split('.')[-1]] = import_decl.path

    def qualify(self, name: str) -> Optional[str]:
        """Fully qualified name a simple type name refers to in this unit, None when unknown.

        Single-type imports come first, then types declared in the unit, then
        java.lang, then java.util when imported on demand. Same-package types
        in other files are not known here and stay unqualified.
        """
        if name in self.imports:
            return self.imports[name]
        if name in self.unit_types:
            return f"{self.package_name}.{name}" if self.package_name else name
        if name in JAVA_LANG_NAMES:
            return 'java.lang.' + name
        if name in JAVA_UTIL_NAMES and 'java.util' in self.wildcard_imports:
            return 'java.util.' + name
        return None

    def _add_dependency(self, type_str: str, record: TypeRecord, type_parameters: Set[str]):
        add_type_dependency(type_str, record, self.context.trusted_prefixes, type_parameters, self.qualify)

    @staticmethod
    def _type_parameter_names(node) -> Set[str]:
        return {p.name for p in getattr(node, 'type_parameters', None) or []}


@dataclass
class CallSite:
    """A method invocation plus the primaries chained in front of it (`a.b().c()` -> c has [a.b()])."""
    invocation: javalang.tree.Invocation
    chain: Tuple = ()

    @property
    def method_name(self) -> str:
        return self.invocation.member

    @property
    def argument_count(self) -> int:
        return len(self.invocation.arguments or [])

    @property
    def is_super_call(self) -> bool:
        return isinstance(self.invocation, javalang.tree.SuperMethodInvocation)


class MethodCallVisitor:
    """
    Collects every method invocation below a node, lambdas, anonymous class
    bodies and nested blocks included.

    Calls are recorded once they complete: argument and receiver calls come
    before the call consuming them, chained calls left to right.
    """
    def __init__(self):
        self.call_sites: List[CallSite] = []

    def visit(self, node):
        if isinstance(node, (list, tuple)):
            for item in node:
                self.visit(item)
            return
        if not isinstance(node, javalang.ast.Node):
            return

        self._visit_children(node)
        self._record(node, ())

        selectors = node.selectors if isinstance(node, javalang.tree.Primary) else None
        if selectors:
            chain = [node]
            for selector in selectors:
                self._visit_children(selector)
                self._record(selector, tuple(chain))
                chain.append(selector)

    def _visit_children(self, node):
        if not isinstance(node, javalang.ast.Node):
            return
        for attr in node.attrs:
            if attr == 'selectors':
                continue
            value = getattr(node, attr, None)
            if isinstance(value, (javalang.ast.Node, list, tuple)):
                self.visit(value)

    def _record(self, node, chain: Tuple):
        if isinstance(node, (javalang.tree.MethodInvocation, javalang.tree.SuperMethodInvocation)):
            self.call_sites.append(CallSite(invocation=node, chain=chain))
