from dataclasses import dataclass, field
from typing import Dict, Iterable


@dataclass
class RegistryItem:
    type: str
    description: str
    label: str | None = None


@dataclass
class Registry:
    name: str
    items: Dict[str, RegistryItem] = field(default_factory=dict)

    def register(self, type_name: str, description: str, label: str | None = None) -> None:
        self.items[type_name] = RegistryItem(type=type_name, description=description, label=label)

    def get(self, type_name: str) -> RegistryItem | None:
        return self.items.get(type_name)

    def resolve(self, name: str) -> RegistryItem | None:
        """Look an item up by type or by its editor label."""
        item = self.items.get(name)
        if item is not None:
            return item
        for candidate in self.items.values():
            if candidate.label == name:
                return candidate
        return None

    def all(self) -> Iterable[RegistryItem]:
        return self.items.values()
