"""
How many containers of a given size fit on an ECS container instance.
"""
from typing import Any, Dict, List

INSTANCE_TYPE_ATTRIBUTE = 'ecs.instance-type'


def containers_possible(cpu: int, memory: int, resources: List[Dict[str, Any]]) -> int:
    """
    Calculate how many containers of `cpu` CPU units and `memory` MiB fit.

    A container needs both resources at once, so whichever runs out first
    caps the count. Resources other than CPU and MEMORY are ignored.

    Args:
        cpu: CPU units one container needs (must not be zero)
        memory: Memory in MiB one container needs (must not be zero)
        resources: ECS resources of one container instance, as found in
            `registeredResources` or `remainingResources`

    Returns:
        int: Number of containers that can be scheduled
    """
    by_cpu = 0
    by_memory = 0
    for resource in resources:
        name = resource.get('name')
        if name == 'CPU':
            by_cpu += resource.get('integerValue', 0) // cpu
        elif name == 'MEMORY':
            by_memory += resource.get('integerValue', 0) // memory
    return min(by_cpu, by_memory)


def get_instance_type(attributes: List[Dict[str, str]]) -> str:
    """Return the EC2 instance type from ECS attributes, or an empty string."""
    for attribute in attributes:
        if attribute.get('name') == INSTANCE_TYPE_ATTRIBUTE:
            return attribute.get('value', '')
    return ''
