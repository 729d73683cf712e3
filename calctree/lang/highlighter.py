"""Syntax highlighting for statements, including ones that are still being typed."""

from termcolor import colored

from calctree.grammar.calc import highlight_spans


STYLES = {
    "number": "blue",
    "operator": "green",
    "identifier": "yellow",
    "variable": "magenta",
    "comment": "light_grey",
    "whitespace": None,
    "error": "red",
}


def highlight(line, cursor_pos=0, color=True):
    """Returns line with its tokens colored by category. Text outside of any span is left as is."""
    result, pos = "", 0
    for start, end, category in highlight_spans(line, cursor_pos):
        result += line[pos:start]
        if STYLES[category] and start != end:
            result += colored(line[start:end], STYLES[category], no_color=not color)
        else:
            result += line[start:end]
        pos = end
    return result + line[pos:]
