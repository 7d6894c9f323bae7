"""Template helpers and their registry.

Helpers are registered once at start-up into a ``HelperRegistry`` which is
then frozen and handed to the template renderer. Each helper receives the
current Jinja rendering context as its first argument.

Usage in templates::

    {% call markdown() %}
    > **Note** rendered as markdown
    {% endcall %}

    {{ if_eq(page.path, "index.md", "home", "inner") }}
    {{ replace("-", " ", page.title) }}
"""

import textwrap
from collections.abc import Callable, Iterator, Mapping
from types import MappingProxyType

from jinja2 import pass_context
from jinja2.runtime import Context
from markupsafe import Markup, escape

from docsmith.core.transform import ContentTransform
from docsmith.errors import DuplicateHelperError

Helper = Callable[..., object]


class HelperRegistry(Mapping[str, Helper]):
    """Name to helper mapping, read-only once frozen."""

    def __init__(self) -> None:
        self._helpers: dict[str, Helper] = {}
        self._frozen = False

    def register(self, name: str, helper: Helper) -> None:
        """Register a helper under a unique name.

        Raises:
            DuplicateHelperError: If the name is already taken
            RuntimeError: If the registry has been frozen
        """
        if self._frozen:
            raise RuntimeError(f"Cannot register helper {name!r}: registry is frozen")
        if name in self._helpers:
            raise DuplicateHelperError(f"Helper already registered: {name}")
        self._helpers[name] = pass_context(helper)

    def freeze(self) -> "HelperRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def as_globals(self) -> Mapping[str, Helper]:
        return MappingProxyType(self._helpers)

    def __getitem__(self, name: str) -> Helper:
        return self._helpers[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._helpers)

    def __len__(self) -> int:
        return len(self._helpers)


def make_markdown_helper(
    transform: ContentTransform,
    container_class: str = "markdown-body",
) -> Helper:
    """Build the helper rendering inline markdown inside a container element.

    The markdown comes either from the first argument or, when used as a
    ``{% call %}`` block, from the block body. Block bodies are dedented so
    that indentation inside templates does not turn into code blocks.
    """

    def markdown(
        context: Context,
        text: object = None,
        caller: Callable[[], str] | None = None,
    ) -> Markup:
        if text is None:
            source = textwrap.dedent(str(caller())) if caller is not None else ""
        else:
            source = str(text)
        html = transform.render(source)
        return Markup(f'<div class="{escape(container_class)}">{html}</div>')

    return markdown


def _render_branch(branch: object) -> object:
    if callable(branch):
        return branch()
    return branch


def if_eq(
    context: Context,
    left: object,
    right: object,
    equal: object = "",
    not_equal: object = "",
) -> object:
    """Return the rendered ``equal`` branch when both values match, else ``not_equal``.

    Branches may be plain values or callables such as macros or ``caller``.
    """
    return _render_branch(equal if left == right else not_equal)


def make_replace_helper(replace_all: bool = False) -> Helper:
    """Build the literal string-substitution helper.

    Args:
        replace_all: Replace every occurrence instead of only the first one

    Returns:
        Helper with signature ``replace(pattern, replacement, subject)``
    """
    count = -1 if replace_all else 1

    def replace(context: Context, pattern: object, replacement: object, subject: object) -> Markup:
        return Markup(str(subject).replace(str(pattern), str(replacement), count))

    return replace


def build_registry(
    transform: ContentTransform,
    *,
    replace_all: bool = False,
    markdown_class: str = "markdown-body",
) -> HelperRegistry:
    """Create the frozen registry with the standard helpers."""
    registry = HelperRegistry()
    registry.register("markdown", make_markdown_helper(transform, markdown_class))
    registry.register("if_eq", if_eq)
    registry.register("replace", make_replace_helper(replace_all))
    return registry.freeze()
