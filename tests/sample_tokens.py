"""Extension registries loaded by the CLI tests."""

from regxl import ExtensionRegistry

registry = ExtensionRegistry()


@registry.token()
def hexByte(args, content):
    return "oneOf(digit 'a' to 'f' 'A' to 'F') 2x"


@registry.token()
def quoted(args, content):
    return ["'\"'", content, "'\"'"]


# A plain mapping works too
extra = {"dot": lambda args, content: "'.'"}

clash = {"hexByte": lambda args, content: "'x'"}

not_a_registry = 42
