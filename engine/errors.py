"""Exception types raised by the game engine."""


class ParseError(ValueError):
    """Text could not be parsed into a game value (dice notation, tool arguments)."""


class InvalidNotation(ParseError):
    """A dice notation string does not match NdS[+/-M]."""

    def __init__(self, notation: str) -> None:
        self.notation = notation
        super().__init__(f'Invalid dice notation: {notation}. Use format like "2d6+3"')


class UnknownTool(LookupError):
    """A tool call named a tool that is not registered."""

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"Unknown tool: {tool}")
