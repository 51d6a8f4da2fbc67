import logging
import javalang
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .analyzer import JavaSourceAnalyzer
from .models import Diagnostic, MethodRecord, TypeRecord
from .resolver import TypeIndex, simple_name
from .visitor import DEFAULT_TRUSTED_PREFIXES, CallSite, strip_type, type_to_string

logger = logging.getLogger(__name__)


class SymbolResolutionError(Exception):
    """A call or type reference could not be bound to a declaration in the source tree."""


@dataclass(frozen=True)
class ResolvedMethod:
    declaring_type: str  # simple name of the declaring type
    name: str
    return_type: str


@dataclass
class ResolutionScope:
    """What a call inside one method body can see."""
    current_type: TypeRecord
    local_types: Dict[str, str] = field(default_factory=dict)  # variable name -> declared type


class JavaSymbolResolver:
    """
    Resolves method invocations to their declaring type using the declarations
    found in a source tree.

    Only types declared in the tree can be bound; calls on library types
    (java.*, third-party jars) raise SymbolResolutionError.
    """
    def __init__(self, source_root: Optional[str] = None, source_suffix: str = '.java',
                 index: Optional[TypeIndex] = None,
                 trusted_prefixes: Sequence[str] = DEFAULT_TRUSTED_PREFIXES, show_progress: bool = False):
        self.source_root = source_root
        # Problems met while indexing source_root.
        self.diagnostics: List[Diagnostic] = []
        if index is None:
            analyzer = JavaSourceAnalyzer(trusted_prefixes=trusted_prefixes, source_suffix=source_suffix,
                                          show_progress=show_progress)
            index = TypeIndex(analyzer.analyze_directory(source_root)) if source_root else TypeIndex({})
            self.diagnostics = list(analyzer.diagnostics)
        self.index = index

    def scope_for(self, type_record: TypeRecord, method_node) -> ResolutionScope:
        """Collect parameter and local variable types of a method or constructor declaration."""
        local_types: Dict[str, str] = {}
        for _, parameter in method_node.filter(javalang.tree.FormalParameter):
            local_types[parameter.name] = type_to_string(parameter.type)
        for _, declaration in method_node.filter(javalang.tree.VariableDeclaration):
            declared_type = type_to_string(declaration.type)
            for declarator in declaration.declarators:
                local_types[declarator.name] = declared_type
        for _, catch_parameter in method_node.filter(javalang.tree.CatchClauseParameter):
            if catch_parameter.types:
                local_types[catch_parameter.name] = catch_parameter.types[0]
        return ResolutionScope(current_type=type_record, local_types=local_types)

    def resolve(self, call_site: CallSite, scope: ResolutionScope) -> ResolvedMethod:
        """
        Bind a call site to the method it invokes.

        Raises:
            SymbolResolutionError: If the receiver type or the method cannot be found.
        """
        receiver = self._receiver_type(call_site, scope)
        return self._find_method(receiver, call_site.method_name, call_site.argument_count)

    def _receiver_type(self, call_site: CallSite, scope: ResolutionScope) -> TypeRecord:
        if call_site.chain:
            return self._chain_type(call_site.chain, scope)
        if call_site.is_super_call:
            return self._superclass_of(scope.current_type)
        qualifier = call_site.invocation.qualifier
        if not qualifier or qualifier == 'this':
            return scope.current_type
        return self._qualifier_type(qualifier, scope)

    def _chain_type(self, chain, scope: ResolutionScope) -> TypeRecord:
        head, rest = chain[0], chain[1:]
        if isinstance(head, javalang.tree.This):
            current = scope.current_type
        elif isinstance(head, (javalang.tree.MethodInvocation, javalang.tree.SuperMethodInvocation)):
            resolved = self.resolve(CallSite(invocation=head), scope)
            current = self._type_named(resolved.return_type)
        elif isinstance(head, javalang.tree.ClassCreator):
            current = self._type_named(type_to_string(head.type))
        elif isinstance(head, javalang.tree.MemberReference):
            path = f"{head.qualifier}.{head.member}" if head.qualifier else head.member
            current = self._qualifier_type(path, scope)
        else:
            raise SymbolResolutionError(f"cannot type chain head {type(head).__name__}")

        for element in rest:
            if isinstance(element, javalang.tree.MemberReference):
                current = self._type_named(self._field_type(current, element.member))
            elif isinstance(element, javalang.tree.MethodInvocation):
                resolved = self._find_method(current, element.member, len(element.arguments or []))
                current = self._type_named(resolved.return_type)
            else:
                raise SymbolResolutionError(f"cannot type chain element {type(element).__name__}")
        return current

    def _qualifier_type(self, qualifier: str, scope: ResolutionScope) -> TypeRecord:
        # A fully qualified type name makes the call static.
        record = self.index.find(qualifier) if '.' in qualifier else None
        if record is not None:
            return record

        head, *members = qualifier.split('.')
        if head in scope.local_types:
            current = self._type_named(scope.local_types[head])
        else:
            field_type = self._lookup_field(scope.current_type, head)
            if field_type is not None:
                current = self._type_named(field_type)
            else:
                current = self.index.find(head)
                if current is None:
                    raise SymbolResolutionError(f"unknown receiver {head}")

        for member in members:
            current = self._type_named(self._field_type(current, member))
        return current

    def _type_named(self, type_str: str) -> TypeRecord:
        if not type_str or '[]' in type_str:
            raise SymbolResolutionError(f"no declared type for '{type_str}'")
        name = strip_type(type_str)
        record = self.index.find(name) or self.index.find(simple_name(name))
        if record is None:
            raise SymbolResolutionError(f"type {name} is not declared in the source tree")
        return record

    def _superclass_of(self, record: TypeRecord) -> TypeRecord:
        if not record.superclass:
            raise SymbolResolutionError(f"{record.name} has no superclass in the source tree")
        return self._type_named(record.superclass)

    def _field_type(self, record: TypeRecord, field_name: str) -> str:
        field_type = self._lookup_field(record, field_name)
        if field_type is None:
            raise SymbolResolutionError(f"{record.name} has no field {field_name}")
        return field_type

    def _lookup_field(self, record: TypeRecord, field_name: str) -> Optional[str]:
        for candidate in self._type_hierarchy(record):
            for field_record in candidate.fields:
                if field_record.name == field_name:
                    return field_record.type
        return None

    def _find_method(self, record: TypeRecord, method_name: str, argument_count: int) -> ResolvedMethod:
        for candidate in self._type_hierarchy(record):
            methods = [m for m in candidate.methods if m.name == method_name and not m.is_constructor]
            if not methods:
                continue
            method = next((m for m in methods if self._accepts(m, argument_count)), methods[0])
            return ResolvedMethod(declaring_type=candidate.name, name=method.name,
                                  return_type=method.return_type)
        raise SymbolResolutionError(f"no method {method_name} in {record.name} or its supertypes")

    @staticmethod
    def _accepts(method: MethodRecord, argument_count: int) -> bool:
        parameters = method.parameters
        if parameters and parameters[-1].type.endswith('...'):
            return argument_count >= len(parameters) - 1
        return argument_count == len(parameters)

    def _type_hierarchy(self, record: TypeRecord) -> List[TypeRecord]:
        """The record, then its superclasses, then interfaces, breadth first."""
        ordered, seen = [], set()
        queue = [record]
        while queue:
            current = queue.pop(0)
            if current.full_name in seen:
                continue
            seen.add(current.full_name)
            ordered.append(current)
            supertypes = ([current.superclass] if current.superclass else []) + current.interfaces
            for name in supertypes:
                parent = self.index.find(name)
                if parent is not None:
                    queue.append(parent)
        return ordered
