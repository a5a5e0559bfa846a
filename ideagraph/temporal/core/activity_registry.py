from typing import Callable, Dict, List


class ActivityRegistry:
    """Central registry for all activities, keyed by activity name."""

    _activities: Dict[str, Callable] = {}
    _groups: Dict[str, List[str]] = {}

    @classmethod
    def register(cls, group: str, name: str):
        """Decorator to register an activity under a group."""
        def decorator(fn):
            cls._activities[name] = fn
            cls._groups.setdefault(group, [])
            if name not in cls._groups[group]:
                cls._groups[group].append(name)
            return fn
        return decorator

    @classmethod
    def get_all_activities(cls) -> Dict[str, Callable]:
        return cls._activities

    @classmethod
    def get_group(cls, group: str) -> List[Callable]:
        return [cls._activities[name] for name in cls._groups.get(group, [])]
