import logging
from typing import Dict

from .models import ComponentRecord, TypeRecord
from .resolver import TypeIndex

logger = logging.getLogger(__name__)


class ComponentAnalyzer:
    """Groups TypeRecords into package-level components and links them."""

    def analyze_components(self, types: Dict[str, TypeRecord]) -> Dict[str, ComponentRecord]:
        """
        Args:
            types: Mapping of fully qualified name to TypeRecord.

        Returns:
            Mapping of component name to ComponentRecord. The unnamed package is
            the "(default)" component.
        """
        components: Dict[str, ComponentRecord] = {}
        index = TypeIndex(types)

        # Pass 1: membership
        for record in types.values():
            component_name = record.component_name
            component = components.get(component_name)
            if component is None:
                component = components[component_name] = ComponentRecord(component_name)

            if record.is_interface:
                component.interfaces.add(record.name)
                component.provided_interfaces.add(record.name)
            else:
                component.classes.add(record.name)

        # Pass 2: dependencies between components
        for record in types.values():
            source = components[record.component_name]
            for dependency in record.dependencies:
                target_component = index.component_of(dependency)
                if target_component is None or target_component == source.name:
                    continue
                source.dependencies.add(target_component)
                if index.find(dependency).is_interface:
                    source.required_interfaces.add(dependency)

        logger.info("Found %d components", len(components))
        for component in components.values():
            logger.info("  - Component: %s (%d classes, %d interfaces, %d dependencies)",
                        component.name, len(component.classes),
                        len(component.interfaces), len(component.dependencies))
        return components
