#!/usr/bin/env python3
"""
Java Source UML Generator

Generate PlantUML class, component and sequence diagrams from Java sources.

Usage Examples:
    # Class diagram of a whole source tree (output/uml-diagram.{puml,png,svg})
    python gen_uml_java.py ./src/main/java

    # Same, with a component diagram next to it and a custom output base
    python gen_uml_java.py ./src/main/java output/app --components

    # Sequence diagram of the calls made by Cat.play()
    python gen_uml_java.py -sequence ./sample Cat play output/cat-play-seq

    # Only write the .puml text, do not call PlantUML
    python gen_uml_java.py ./sample --no-render
"""

import os
import sys
import logging
import argparse
from typing import Any, Dict, List, Optional

import yaml

from na_utils.timer import Timer, setup_logging, timer
from uml_analyzer.analyzer import JavaSourceAnalyzer
from uml_analyzer.components import ComponentAnalyzer
from uml_analyzer.config import load_config
from uml_analyzer.plantuml import generate_class_diagram, generate_component_diagram, generate_sequence_diagram
from uml_analyzer.renderer import PlantUMLRenderer, RenderError
from uml_analyzer.sequence import SequenceAnalyzer

logger = logging.getLogger("gen_uml_java")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Java Source UML Generator',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  python gen_uml_java.py ./src/main/java
  python gen_uml_java.py -sequence ./sample Cat play output/cat-play-seq
        '''
    )
    parser.add_argument('args', nargs='*', metavar='ARG',
                        help='<source-dir> [output-base], or with -sequence: '
                             '<source-dir> <type> <method> [output-base]')
    parser.add_argument('-sequence', '--sequence', action='store_true', dest='sequence',
                        help='Generate a sequence diagram for one entry method')
    parser.add_argument('--components', action='store_true',
                        help='Also generate a component diagram (whole-tree mode)')
    parser.add_argument('--config', type=str,
                        help='YAML configuration file')
    parser.add_argument('--no-render', action='store_true',
                        help='Write the PlantUML text only, skip PNG/SVG rendering')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Debug logging')
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {'output': {}}
    if args.sequence and len(args.args) > 3:
        overrides['output']['sequence_diagram'] = args.args[3]
    elif not args.sequence and len(args.args) > 1:
        overrides['output']['class_diagram'] = args.args[1]
    if args.verbose:
        overrides['logging'] = {'level': 'DEBUG'}
    return overrides


@timer
def generate_class_diagrams(source_dir: str, config: Dict[str, Any], renderer: PlantUMLRenderer,
                            render: bool = True, with_components: bool = False) -> int:
    analysis = config['analysis']
    output = config['output']

    if not os.path.isdir(source_dir):
        logger.error("Source directory does not exist or is not a directory: %s", source_dir)
        return 1

    logger.info("Source directory: %s", source_dir)
    logger.info("Output base path: %s", output['class_diagram'])

    analyzer = JavaSourceAnalyzer(
        trusted_prefixes=analysis['trusted_prefixes'],
        source_suffix=analysis['source_suffix'],
        show_progress=analysis['show_progress'],
    )
    with Timer("analysis", logger):
        types = analyzer.analyze_directory(source_dir)

    if not types:
        logger.warning("No Java classes found in the specified directory")
        return 0

    logger.info("Found %d classes", len(types))
    for record in types.values():
        logger.info("  - %s %s", record.kind, record.full_name)

    formats = config['plantuml']['formats']
    written: List[str] = []
    try:
        written += renderer.write_diagram(generate_class_diagram(types), output['class_diagram'], formats, render)
        if with_components:
            components = ComponentAnalyzer().analyze_components(types)
            written += renderer.write_diagram(generate_component_diagram(components),
                                              output['component_diagram'], formats, render)
    except RenderError as e:
        logger.error("Error rendering UML diagram: %s", e)
        return 1
    except OSError as e:
        logger.error("Cannot write diagram files: %s", e)
        return 1

    for path in written:
        print(f"✅ {path}")
    if analyzer.diagnostics:
        print(f"⚠️ {len(analyzer.diagnostics)} problem(s) recovered during analysis, see log")
    return 0


@timer
def generate_sequence_diagrams(source_dir: str, type_name: str, method_name: str, config: Dict[str, Any],
                               renderer: PlantUMLRenderer, render: bool = True) -> int:
    sequence = config['sequence']
    analysis = config['analysis']
    output_base = config['output']['sequence_diagram']

    if not os.path.isdir(source_dir):
        logger.error("Source directory does not exist or is not a directory: %s", source_dir)
        return 1

    logger.info("Source: %s", source_dir)
    logger.info("Entry Point: %s.%s", type_name, method_name)

    analyzer = SequenceAnalyzer(
        source_dir,
        max_depth=sequence['max_depth'],
        source_suffix=analysis['source_suffix'],
        trusted_prefixes=analysis['trusted_prefixes'],
        show_progress=analysis['show_progress'],
    )
    with Timer("sequence analysis", logger):
        traces = analyzer.analyze(type_name, method_name)

    puml = generate_sequence_diagram(type_name, method_name, traces, actor=sequence['actor'])
    try:
        # Sequence diagrams are rendered as PNG only.
        written = renderer.write_diagram(puml, output_base, ['png'], render)
    except RenderError as e:
        logger.error("Error rendering sequence diagram: %s", e)
        return 1
    except OSError as e:
        logger.error("Cannot write diagram files: %s", e)
        return 1

    unresolved = sum(1 for t in traces if not t.is_resolved)
    for path in written:
        print(f"✅ {path}")
    print(f"🔍 {len(traces)} call(s) traced, {unresolved} unresolved")
    skipped = sum(1 for d in analyzer.diagnostics if d.kind in ('parse_failure', 'read_failure'))
    if skipped:
        print(f"⚠️ {skipped} file(s) could not be indexed, see log")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.sequence:
        if not 3 <= len(args.args) <= 4:
            parser.error("-sequence needs <source-dir> <type> <method> [output-base]")
    elif not 1 <= len(args.args) <= 2:
        parser.error("expected <source-dir> [output-base]")

    try:
        config = load_config(args.config, _overrides(args))
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"❌ Cannot load configuration: {e}", file=sys.stderr)
        return 1

    setup_logging(config['logging']['level'], config['logging']['file'])
    logger.info("=== Java Source UML Generator ===")

    plantuml = config['plantuml']
    renderer = PlantUMLRenderer(plantuml['jar_path'], plantuml['server_url'], plantuml['timeout'])
    render = not args.no_render

    if args.sequence:
        source_dir, type_name, method_name = args.args[:3]
        return generate_sequence_diagrams(source_dir, type_name, method_name, config, renderer, render)
    return generate_class_diagrams(args.args[0], config, renderer, render, args.components)


if __name__ == '__main__':
    sys.exit(main())
