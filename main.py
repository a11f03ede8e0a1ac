import logging

from rich.pretty import pprint

from argotree import *

__prog__ = "argotree-demo"

tree = CommandTree(print, shell=True, fancy=True, colorful=True, deferred=True)
tree.insert(Command(Static("ping"), handler=lambda context: "pong"))
tree.insert(Command(Static("count"), Argument("n", int), handler=lambda context: list(range(context["n"]))))
tree.insert(Command(Static("greet"), Argument("name", required=False, default="world"),
                    handler=lambda context: f"hello {context["name"]}"))
tree.insert(Command(Static("remove", "rm"), Argument("path"), handler=lambda context: context.values))


if __name__ == '__main__':
    logging.basicConfig(level=logging.DEBUG)
    while line := input("> ").strip():
        if match := tree.resolve(__prog__, line):
            pprint(match())
