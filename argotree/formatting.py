"""
Syntax rendering for component chains.

- SyntaxFormatter: contract, format(components) -> str.
- StandardSyntaxFormatter: literals as-is, <name> for required arguments,
  [name] for optional arguments, single-space separated.

render() produces the same layout as a rich Text, styled per kind when
colorful. Hosts may override the styles through a __styles__ mapping in
__main__ (keys: "syntax-literal", "syntax-required", "syntax-optional").
"""
from collections import defaultdict

from rich.text import Text


class SyntaxFormatter:
    """
    Render an ordered chain of components as a one-line usage string.
    """

    def format(self, components, /):
        raise NotImplementedError

    def __call__(self, components, /):
        return self.format(components)


class StandardSyntaxFormatter(SyntaxFormatter):

    def _pieces(self, components):
        for component in components:
            if component.static:
                yield component.name, "syntax-literal"
            elif component.required:
                yield "<%s>" % component.name, "syntax-required"
            else:
                yield "[%s]" % component.name, "syntax-optional"

    def format(self, components, /):
        return " ".join(piece for piece, _ in self._pieces(components))

    def render(self, components, /, *, colorful=False):
        styles = defaultdict(str, {
            "syntax-literal": "bold #E6E6F0",  # near-white literals
            "syntax-required": "#00E5FF",  # cyan required arguments
            "syntax-optional": "dim #00E5FF",  # dimmed optional arguments
        } | getattr(__import__("__main__"), "__styles__", {}))

        text = Text()
        for index, (piece, style) in enumerate(self._pieces(components)):
            if index:
                text.append(" ")
            text.append(piece, styles[style] if colorful else "")
        return text


__all__ = (
    "SyntaxFormatter",
    "StandardSyntaxFormatter",
)
