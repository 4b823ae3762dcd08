from typing import Any, Dict, List


class OrderingBuffer:
    """Rebuilds input order from results that arrive in completion order.

    push() returns the values that became deliverable: the pushed value plus
    any buffered successors, or nothing if an earlier index is still missing.
    """

    def __init__(self):
        self.last_yielded = -1
        self.pending: Dict[int, Any] = {}

    def push(self, index: int, value: Any) -> List[Any]:
        if index <= self.last_yielded or index in self.pending:
            raise ValueError(f"Index {index} was already delivered or buffered")

        if index != self.last_yielded + 1:
            self.pending[index] = value
            return []

        ready = [value]
        self.last_yielded = index
        while self.last_yielded + 1 in self.pending:
            self.last_yielded += 1
            ready.append(self.pending.pop(self.last_yielded))
        return ready

    def __len__(self) -> int:
        return len(self.pending)
