"""Styling for questionary prompts.

Shared by the context selection in ``core.cluster`` and the secret
prompts in ``secrets.prompts``.
"""

from questionary import Style

# ANSI 256 colors, blue question mark and green selection
PROMPT_STYLE = Style(
    [
        ("qmark", "fg:#5fafd7 bold"),
        ("question", "bold"),
        ("answer", "fg:#87d787 bold"),
        ("pointer", "fg:#87d787 bold"),
        ("highlighted", "fg:#1c1c1c bg:#87d787 bold"),
        ("instruction", "fg:#6c6c6c italic"),
        ("disabled", "fg:#585858 italic"),
        # Autocomplete menu (namespace prompt)
        ("completion-menu.completion.current", "fg:#1c1c1c bg:#87d787 bold"),
    ]
)

POINTER = "❯ "
QMARK = "? "
