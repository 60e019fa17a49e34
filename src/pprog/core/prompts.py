"""
System prompt for pprog.

The prompt embeds the project's file tree, which is re-rendered before
every query so files the model just wrote show up on the next turn.
"""

import typing as _typing

_SYSTEM_PROMPT = """\
You are a coding assistant working on a project.

File tree structure:
{tree}

The user will give you instructions on how to change the project code.

{check_guidance}If any bash commands are needed like installing packages use tool 'execute'.

Never make any changes outside of the project's root directory.
Always read and write entire file contents. Never write partial contents of a file.

The user may also ask general questions and in that case simply answer but do not execute any tools.
"""

_CHECK_GUIDANCE = """\
Always call 'compile_check' tool after completing changes that the user requests. \
If compile_check shows any errors, make subsequent calls to correct the errors. \
Continue checking and rewriting until there are no more errors. \
If there are warnings then do not try to fix them, just let the user know.
"""


def build_system_prompt(tree: str, *, has_check: bool = True) -> str:
    """
    Build the coding-assistant system prompt.

    Args:
        tree: Rendered project file tree
        has_check: Whether the compile_check tool is declared

    Returns:
        The full system prompt
    """
    return _SYSTEM_PROMPT.format(
        tree=tree,
        check_guidance=_CHECK_GUIDANCE if has_check else "",
    )


def system_prompt_provider(
    tree_provider: _typing.Callable[[], str],
    *,
    has_check: bool = True,
) -> _typing.Callable[[], str]:
    """Wrap a tree provider into a zero-argument system prompt provider."""

    def provide() -> str:
        return build_system_prompt(tree_provider(), has_check=has_check)

    return provide
