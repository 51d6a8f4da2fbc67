import os
import logging
import javalang
from typing import Dict, List, Optional, Sequence

from tqdm import tqdm

from .models import AnalysisContext, TypeRecord
from .visitor import DEFAULT_TRUSTED_PREFIXES, JavaTypeVisitor

logger = logging.getLogger(__name__)

PARSE_ERRORS = (javalang.parser.JavaSyntaxError, javalang.tokenizer.LexerError)


def describe_parse_error(error: Exception) -> str:
    """javalang syntax errors carry their message in `description`, not in args."""
    description = getattr(error, 'description', None) or str(error) or type(error).__name__
    at = getattr(error, 'at', None)
    position = getattr(at, 'position', None)
    if position:
        return f"{description} at line {position[0]}, column {position[1]}"
    return description


def parse_java_file(file_path: str) -> javalang.tree.CompilationUnit:
    """Read a Java file as UTF-8 and parse it. Read and parse errors propagate."""
    with open(file_path, 'r', encoding='utf-8') as f:
        code = f.read()
    return javalang.parse.parse(code)


def find_java_files(directory_path: str, suffix: str = '.java') -> List[str]:
    """All files under directory_path ending with suffix, in a stable order."""
    java_files = []
    for root, dirs, files in os.walk(directory_path):
        dirs.sort()
        for file in sorted(files):
            if file.endswith(suffix):
                java_files.append(os.path.join(root, file))
    return java_files


class JavaSourceAnalyzer:
    """
    Extracts TypeRecords from every Java source file below a directory.

    One analyzer instance is one analysis run: records accumulate in
    `self.context.types` keyed by fully qualified name, and recovered problems
    in `self.context.diagnostics`.
    """
    def __init__(self, trusted_prefixes: Sequence[str] = DEFAULT_TRUSTED_PREFIXES,
                 source_suffix: str = '.java', show_progress: bool = False):
        self.context = AnalysisContext(trusted_prefixes=tuple(trusted_prefixes))
        self.source_suffix = source_suffix
        self.show_progress = show_progress

    @property
    def types(self) -> Dict[str, TypeRecord]:
        return self.context.types

    @property
    def diagnostics(self):
        return self.context.diagnostics

    def analyze_directory(self, directory_path: str) -> Dict[str, TypeRecord]:
        """
        Analyze all Java files in the given directory, recursively.

        Args:
            directory_path: Root of the source tree.

        Returns:
            Mapping of fully qualified type name to TypeRecord.

        Raises:
            FileNotFoundError: If directory_path is not an existing directory.
        """
        if not os.path.isdir(directory_path):
            raise FileNotFoundError(f"Invalid directory: {directory_path}")

        logger.info("Analyzing Java files in directory: %s", directory_path)
        java_files = find_java_files(directory_path, self.source_suffix)
        logger.info("Found %d Java files", len(java_files))

        for file_path in tqdm(java_files, desc="Analyzing", unit="file", disable=not self.show_progress):
            self.analyze_file(file_path)

        failures = sum(1 for d in self.diagnostics if d.kind in ('parse_failure', 'read_failure'))
        if failures:
            logger.warning("%d of %d files could not be analyzed", failures, len(java_files))
        return self.context.types

    def analyze_file(self, file_path: str) -> List[TypeRecord]:
        """Analyze one file. A unit that cannot be read or parsed contributes nothing."""
        logger.debug("Analyzing file: %s", file_path)
        tree = self._get_tree(file_path)
        if tree is None:
            return []
        return self.analyze_tree(tree, file_path)

    def analyze_source(self, code: str, file_path: str = '<string>') -> List[TypeRecord]:
        """Analyze Java source text directly."""
        try:
            tree = javalang.parse.parse(code)
        except PARSE_ERRORS as e:
            self._report_parse_failure(file_path, e)
            return []
        return self.analyze_tree(tree, file_path)

    def analyze_tree(self, tree: javalang.tree.CompilationUnit, file_path: Optional[str] = None) -> List[TypeRecord]:
        visitor = JavaTypeVisitor(self.context, file_path)
        records = visitor.visit_tree(tree)
        # Commit only once the whole unit has been visited.
        for record in records:
            self.context.add_type(record)
            logger.debug("Processed %s: %s", record.kind, record.full_name)
        return records

    def _get_tree(self, file_path: str) -> Optional[javalang.tree.CompilationUnit]:
        try:
            return parse_java_file(file_path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read file %s: %s", file_path, e)
            self.context.report('read_failure', file_path, str(e))
        except PARSE_ERRORS as e:
            self._report_parse_failure(file_path, e)
        return None

    def _report_parse_failure(self, file_path: str, error: Exception):
        message = describe_parse_error(error)
        logger.warning("Failed to parse file %s: %s", file_path, message)
        self.context.report('parse_failure', file_path, message)
