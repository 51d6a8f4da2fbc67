import os
import logging
import javalang
from typing import List, Optional, Sequence, Tuple

from .analyzer import PARSE_ERRORS, describe_parse_error, parse_java_file
from .models import CallTrace, Diagnostic, UNKNOWN_TARGET
from .symbol_resolver import JavaSymbolResolver, ResolutionScope, SymbolResolutionError
from .visitor import DEFAULT_TRUSTED_PREFIXES, MethodCallVisitor

logger = logging.getLogger(__name__)

MAX_DEPTH = 5


class SequenceAnalyzer:
    """
    Traces the method calls made by one entry method.

    Only the entry method body is visited (depth 0). `max_depth` bounds any
    deeper traversal, but following resolved callees into their own bodies is
    not wired up, so every CallTrace has depth 0.
    """
    def __init__(self, source_root: str, resolver: Optional[JavaSymbolResolver] = None,
                 max_depth: int = MAX_DEPTH, source_suffix: str = '.java',
                 trusted_prefixes: Sequence[str] = DEFAULT_TRUSTED_PREFIXES, show_progress: bool = False):
        self.source_root = source_root
        self.source_suffix = source_suffix
        self.max_depth = max_depth
        self.resolver = resolver or JavaSymbolResolver(source_root, source_suffix=source_suffix,
                                                       trusted_prefixes=trusted_prefixes,
                                                       show_progress=show_progress)
        # Indexing problems first, then one entry per unresolved call.
        self.diagnostics: List[Diagnostic] = list(self.resolver.diagnostics)

    def analyze(self, type_name: str, method_name: str) -> List[CallTrace]:
        """
        Args:
            type_name: Simple name of the entry type; its file must be named <type_name>.java.
            method_name: Entry method. The type name itself selects the first constructor.

        Returns:
            CallTraces in the order the calls complete in the method body. Empty
            when the file, type or method cannot be found.
        """
        traces: List[CallTrace] = []

        start_file = self.find_file_for_type(self.source_root, type_name)
        if start_file is None:
            logger.error("Could not find source file for type: %s", type_name)
            return traces

        try:
            tree = parse_java_file(start_file)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read file %s: %s", start_file, e)
            return traces
        except PARSE_ERRORS as e:
            logger.error("Failed to parse file %s: %s", start_file, describe_parse_error(e))
            return traces

        type_node, method_node = self._find_method(tree, type_name, method_name)
        if method_node is None:
            logger.error("Method %s not found in type %s", method_name, type_name)
            return traces

        type_record = self._type_record(tree, type_name)
        if type_record is None:
            logger.error("Type %s is missing from the symbol index", type_name)
            return traces

        logger.info("Analyzing sequence starting from %s.%s", type_name, method_name)
        scope = self.resolver.scope_for(type_record, method_node)
        self._analyze_method_body(method_node, type_name, scope, traces, 0)
        return traces

    def _analyze_method_body(self, method_node, current_type: str, scope: ResolutionScope,
                             traces: List[CallTrace], depth: int):
        if depth >= self.max_depth:
            return

        visitor = MethodCallVisitor()
        visitor.visit(method_node.body)

        for call_site in visitor.call_sites:
            try:
                resolved = self.resolver.resolve(call_site, scope)
            except SymbolResolutionError as e:
                logger.debug("Could not resolve method call %s: %s", call_site.method_name, e)
                self.diagnostics.append(Diagnostic('resolution_failure', current_type,
                                                   f"{call_site.method_name}: {e}"))
                traces.append(CallTrace(current_type, UNKNOWN_TARGET, call_site.method_name, "void", depth))
                continue
            traces.append(CallTrace(current_type, resolved.declaring_type, resolved.name,
                                    resolved.return_type, depth))

    def find_file_for_type(self, directory: str, type_name: str) -> Optional[str]:
        """Depth-first search for <type_name><suffix>; the first match in name order wins."""
        target = type_name + self.source_suffix
        try:
            entries = sorted(os.scandir(directory), key=lambda entry: entry.name)
        except OSError as e:
            logger.warning("Cannot list %s: %s", directory, e)
            return None
        for entry in entries:
            if entry.is_dir():
                found = self.find_file_for_type(entry.path, type_name)
                if found is not None:
                    return found
            elif entry.name == target:
                return entry.path
        return None

    @staticmethod
    def _find_method(tree: javalang.tree.CompilationUnit, type_name: str,
                     method_name: str) -> Tuple[Optional[object], Optional[object]]:
        for _, type_node in tree.filter(javalang.tree.TypeDeclaration):
            if type_node.name != type_name or isinstance(type_node, javalang.tree.AnnotationDeclaration):
                continue
            if isinstance(type_node, javalang.tree.EnumDeclaration):
                members = (type_node.body.declarations or []) if type_node.body else []
            else:
                members = type_node.body or []
            for member in members:
                if isinstance(member, javalang.tree.MethodDeclaration) and member.name == method_name:
                    return type_node, member
            if method_name == type_name:
                for member in members:
                    if isinstance(member, javalang.tree.ConstructorDeclaration):
                        return type_node, member
            return type_node, None
        return None, None

    def _type_record(self, tree: javalang.tree.CompilationUnit, type_name: str):
        package_name = tree.package.name if tree.package else ""
        full_name = f"{package_name}.{type_name}" if package_name else type_name
        return self.resolver.index.find(full_name) or self.resolver.index.find(type_name)
