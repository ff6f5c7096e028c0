UP = 'up'
DOWN = 'down'
NONE = 'none'


def calculate_target_instances(queue_depth, target_per_instance, min_instances, max_instances):
    """
    Calculate the target instance count for a queue depth.

    Each instance is assumed to absorb ``target_per_instance`` messages; any
    remainder needs one more instance. The result is clamped to
    ``[min_instances, max_instances]``.

    Args:
        queue_depth: Number of pending messages (>= 0)
        target_per_instance: Messages each instance absorbs (> 0)
        min_instances: Lower bound of the fleet size
        max_instances: Upper bound of the fleet size

    Returns:
        int: Target instance count
    """
    needed = -(-queue_depth // target_per_instance)
    return min(max(needed, min_instances), max_instances)


def decide(queue_depth, config):
    """Target instance count for ``queue_depth`` under ``config``."""
    return calculate_target_instances(
        queue_depth,
        config.target_per_instance,
        config.min_instances,
        config.max_instances
    )


def scaling_direction(current_instances, target_instances):
    if target_instances > current_instances:
        return UP
    if target_instances < current_instances:
        return DOWN
    return NONE


def scaling_reason(direction):
    """Event reason for a scaling direction."""
    return {UP: 'scale_up', DOWN: 'scale_down'}.get(direction, 'no_change')
