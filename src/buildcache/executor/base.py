"""Result type for externally executed commands."""

from dataclasses import dataclass, field


@dataclass
class ProcessResult:
    """Result of a completed process."""

    exit_code: int
    output: str
    command: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.exit_code != 0
