"""Post-generation hooks.

Hooks receive each generated artifact (gql_sdk.py, gql.py, gql.pyi) before
it is written and may transform its text.

Example usage:
    from gqlbind.core.hooks import AddHeaderHook, HookRunner

    hooks = HookRunner()
    hooks.add_post_hook(AddHeaderHook("# Copyright 2024 My Company"))
"""

from typing import Protocol, runtime_checkable

GENERATED_HEADER = "# Generated by gqlbind. Do not edit."


@runtime_checkable
class PostGenerateHook(Protocol):
    """Protocol for post-generation hooks.

    Example:
        class StripTrailingSpace(PostGenerateHook):
            def post_generate(self, filename: str, content: str) -> str:
                return "\\n".join(line.rstrip() for line in content.splitlines()) + "\\n"
    """

    def post_generate(self, filename: str, content: str) -> str:
        """Called for each generated artifact.

        Args:
            filename: The artifact name (e.g., "gql_sdk.py")
            content: The generated text

        Returns:
            The (possibly transformed) text to write
        """
        ...


class AddHeaderHook:
    """Prepends a header comment to every artifact.

    A header already at the top of the file is not added twice.
    """

    def __init__(self, header: str = GENERATED_HEADER):
        self.header = header.rstrip("\n")

    def post_generate(self, _filename: str, content: str) -> str:
        if content.startswith(self.header):
            return content
        return f"{self.header}\n\n{content}"


class HookRunner:
    """Runs post-generation hooks in registration order."""

    def __init__(self, hooks=None):
        self.post_hooks: list[PostGenerateHook] = list(hooks or [])

    def add_post_hook(self, hook: PostGenerateHook):
        self.post_hooks.append(hook)

    def run_post_hooks(self, filename: str, content: str) -> str:
        for hook in self.post_hooks:
            content = hook.post_generate(filename, content)
        return content
