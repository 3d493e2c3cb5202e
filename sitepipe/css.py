"""CSS post-processing passes: vendor prefixes and custom media queries."""
import re

# Prefixes needed for "last 3 versions, ie 9"
PROPERTY_PREFIXES = {
    "animation": ("-webkit-",),
    "animation-delay": ("-webkit-",),
    "animation-direction": ("-webkit-",),
    "animation-duration": ("-webkit-",),
    "animation-fill-mode": ("-webkit-",),
    "animation-iteration-count": ("-webkit-",),
    "animation-name": ("-webkit-",),
    "animation-timing-function": ("-webkit-",),
    "appearance": ("-webkit-", "-moz-"),
    "backface-visibility": ("-webkit-",),
    "flex": ("-webkit-", "-ms-"),
    "flex-direction": ("-webkit-", "-ms-"),
    "flex-wrap": ("-webkit-", "-ms-"),
    "hyphens": ("-webkit-", "-ms-"),
    "perspective": ("-webkit-",),
    "transform": ("-webkit-", "-ms-"),
    "transform-origin": ("-webkit-", "-ms-"),
    "transition": ("-webkit-",),
    "transition-property": ("-webkit-",),
    "user-select": ("-webkit-", "-moz-", "-ms-"),
}

DISPLAY_PREFIXES = {
    "flex": ("-webkit-box", "-ms-flexbox"),
    "inline-flex": ("-webkit-inline-box", "-ms-inline-flexbox"),
}

# Declarations whose values name other properties
TRANSITION_PROPERTIES = ("transition", "transition-property")

DECLARATION_RE = re.compile(
    r"(?P<lead>[{;]\s*)(?P<prop>[a-z-]+)\s*:\s*(?P<value>[^;{}]+?)\s*(?=[;}])"
)
KEYFRAMES_RE = re.compile(r"(?<![\w-])@keyframes\b")
CUSTOM_MEDIA_RE = re.compile(r"@custom-media\s+(--[\w-]+)\s+([^;]+?)\s*;\s*")
MEDIA_PRELUDE_RE = re.compile(r"@media(?P<prelude>[^{]+)\{")
MEDIA_REFERENCE_RE = re.compile(r"\(\s*(--[\w-]+)\s*\)")
TRANSITION_NAME_RE = re.compile(r"(?<![\w-])(?P<name>[a-z][a-z-]*)(?![\w-])")


def _prefix_value(prop: str, value: str, prefix: str) -> str:
    """Prefix property names listed in a transition value."""
    if prop not in TRANSITION_PROPERTIES:
        return value

    def substitute(match: re.Match) -> str:
        name = match.group("name")
        if prefix in PROPERTY_PREFIXES.get(name, ()):
            return f"{prefix}{name}"
        return name

    return TRANSITION_NAME_RE.sub(substitute, value)


def _prefix_declaration(match: re.Match) -> str:
    lead, prop, value = match.group("lead"), match.group("prop"), match.group("value")

    if prop == "display" and value in DISPLAY_PREFIXES:
        copies = "".join(f"display:{v};" for v in DISPLAY_PREFIXES[value])
        return f"{lead}{copies}display:{value}"

    prefixes = PROPERTY_PREFIXES.get(prop)
    if not prefixes:
        return match.group(0)

    copies = "".join(
        f"{prefix}{prop}:{_prefix_value(prop, value, prefix)};" for prefix in prefixes
    )
    return f"{lead}{copies}{prop}:{value}"


def _block_end(css: str, start: int) -> int:
    """Return the index just past the block opening at or after start."""
    depth = 0
    for index in range(css.index("{", start), len(css)):
        char = css[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1
    return len(css)


def _prefix_keyframes(css: str) -> str:
    parts = []
    position = 0
    for match in KEYFRAMES_RE.finditer(css):
        if match.start() < position:
            continue
        end = _block_end(css, match.start())
        block = css[match.start():end]
        parts.append(css[position:match.start()])
        parts.append(block.replace("@keyframes", "@-webkit-keyframes", 1))
        parts.append("\n")
        parts.append(block)
        position = end
    parts.append(css[position:])
    return "".join(parts)


def prefix_css(css: str) -> str:
    """Add vendor-prefixed copies of declarations and keyframes.

    Args:
        css: Compiled, unprefixed CSS

    Returns:
        CSS with prefixed declarations inserted before the standard ones
    """
    css = _prefix_keyframes(css)
    return DECLARATION_RE.sub(_prefix_declaration, css)


def resolve_custom_media(css: str) -> str:
    """Inline ``@custom-media`` definitions into ``@media`` preludes.

    Args:
        css: CSS possibly containing ``@custom-media --name query;`` rules

    Returns:
        CSS without the definitions and with known ``(--name)`` references
        replaced by their queries
    """
    definitions = {name: query for name, query in CUSTOM_MEDIA_RE.findall(css)}
    if not definitions:
        return css

    css = CUSTOM_MEDIA_RE.sub("", css)

    def substitute_reference(match: re.Match) -> str:
        return definitions.get(match.group(1), match.group(0))

    def substitute_prelude(match: re.Match) -> str:
        prelude = MEDIA_REFERENCE_RE.sub(substitute_reference, match.group("prelude"))
        return f"@media{prelude}{{"

    return MEDIA_PRELUDE_RE.sub(substitute_prelude, css)
