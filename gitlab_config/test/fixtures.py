import os
from typing import Any


class Fixtures:
    def __init__(self, base_path: str):
        self.base_path = base_path

    def path(self, fixture: str) -> str:
        return os.path.join(
            os.path.dirname(__file__), "fixtures", self.base_path, fixture
        )

    def get(self, fixture: str) -> str:
        with open(self.path(fixture), encoding="utf-8") as f:
            return f.read()


MUTATIONS = ("post", "put", "patch", "delete")


def mutations(api: Any) -> list[tuple[str, str]]:
    """Method and path of the mutating calls made on a GitLabApi mock."""
    return [
        (name, args[0]) for name, args, _ in api.method_calls if name in MUTATIONS
    ]
