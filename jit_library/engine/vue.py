"""Vue single-file component loader.

Splits a .vue file into its <template>, <script> and <style> blocks and emits
one ES module:

    const __vue_script__ = { ...component options... };
    const __vue_template__ = "<div>...</div>";
    const __vue_component__ = Object.assign(__vue_script__, {template: __vue_template__});
    (style injection, if any)
    export default __vue_component__;

The template is shipped as a string for the runtime compiler. `<script setup>`
is not supported.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from ..errors import LoaderError
from ..models import EngineRequest
from .base import BUILTIN_PRIORITY
from .base import LoaderPlugin
from .scss import compile_scss
from .scss import include_paths_for

logger = logging.getLogger(__name__)

TEMPLATE_BLOCK = re.compile(r"<template(?P<attrs>[^>]*)>(?P<content>.*)</template>", re.S)
SCRIPT_BLOCK = re.compile(r"<script(?P<attrs>[^>]*)>(?P<content>.*?)</script>", re.S)
STYLE_BLOCK = re.compile(r"<style(?P<attrs>[^>]*)>(?P<content>.*?)</style>", re.S)
LANG_ATTR = re.compile(r"""\blang\s*=\s*["']?(?P<lang>[\w-]+)""")
SETUP_ATTR = re.compile(r"\bsetup\b")
EXPORT_DEFAULT = re.compile(r"^(?P<indent>[ \t]*)export\s+default\s+", re.M)

STYLE_INJECTION = """(function() {
\tif (typeof document == "undefined") return;
\tconst style = document.createElement("style");
\tstyle.textContent = %s;
\tdocument.head.appendChild(style);
})();"""


@dataclass
class SfcBlock:
    """One top-level block of a single-file component."""

    content: str
    lang: str | None = None
    attrs: str = ""


@dataclass
class SfcDescriptor:
    """Parsed single-file component."""

    template: SfcBlock | None
    script: SfcBlock | None
    styles: list[SfcBlock]


def _block(match: re.Match[str]) -> SfcBlock:
    attrs = match.group("attrs")
    lang = LANG_ATTR.search(attrs)
    return SfcBlock(content=match.group("content"), lang=lang.group("lang") if lang else None, attrs=attrs)


def parse_sfc(text: str) -> SfcDescriptor:
    """Split component source into its blocks.

    Args:
        text: Raw .vue file contents

    Returns:
        Parsed descriptor
    """
    # Scripts and styles are located first and blanked out so markup inside
    # them cannot confuse the template match
    script_match = SCRIPT_BLOCK.search(text)
    styles = [_block(match) for match in STYLE_BLOCK.finditer(text)]
    markup = STYLE_BLOCK.sub("", SCRIPT_BLOCK.sub("", text))
    template_match = TEMPLATE_BLOCK.search(markup)

    return SfcDescriptor(
        template=_block(template_match) if template_match else None,
        script=_block(script_match) if script_match else None,
        styles=styles,
    )


def compile_script(script: SfcBlock | None) -> str:
    """Rewrite the component's default export into __vue_script__."""
    if script is None:
        return "const __vue_script__ = {};"
    if SETUP_ATTR.search(script.attrs):
        raise LoaderError("<script setup> components are not supported")
    if script.lang not in (None, "js"):
        raise LoaderError(f'Unsupported <script lang="{script.lang}">')

    content = script.content.strip("\n")
    if not EXPORT_DEFAULT.search(content):
        return content + "\nconst __vue_script__ = {};"
    return EXPORT_DEFAULT.sub(r"\g<indent>const __vue_script__ = ", content, count=1)


def compile_styles(styles: list[SfcBlock], resolve_dir: Path | None, request: EngineRequest) -> str:
    """Compile every style block into one CSS string."""
    chunks = []
    for style in styles:
        if "scoped" in style.attrs:
            logger.warning("Scoped <style> blocks are injected as global styles")
        if style.lang in ("scss", "sass"):
            chunks.append(compile_scss(style.content, include_paths_for(resolve_dir, request), request.minify))
        elif style.lang in (None, "css"):
            chunks.append(style.content.strip())
        else:
            raise LoaderError(f'Unsupported <style lang="{style.lang}">')
    return "\n".join(chunk for chunk in chunks if chunk)


def compile_sfc(text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
    """Compile a single-file component into an ES module.

    Args:
        text: Raw .vue contents
        resolve_dir: Directory for resolving style imports
        request: Resolved engine request

    Returns:
        ES module source ending in `export default __vue_component__;`

    Raises:
        LoaderError: For unsupported component features
    """
    descriptor = parse_sfc(text)

    lines = [compile_script(descriptor.script)]
    if descriptor.template is not None:
        lines.append(f"const __vue_template__ = {json.dumps(descriptor.template.content.strip())};")
        lines.append("const __vue_component__ = Object.assign(__vue_script__, {template: __vue_template__});")
    else:
        lines.append("const __vue_component__ = __vue_script__;")

    css = compile_styles(descriptor.styles, resolve_dir, request)
    if css:
        lines.append(STYLE_INJECTION % json.dumps(css))

    lines.append("export default __vue_component__;")
    return "\n".join(lines) + "\n"


class VueLoader(LoaderPlugin):
    """Compile .vue single-file components."""

    name = "vue"
    extensions = frozenset({".vue"})
    priority = BUILTIN_PRIORITY

    async def transform(self, text: str, resolve_dir: Path | None, request: EngineRequest) -> str:
        return await asyncio.to_thread(compile_sfc, text, resolve_dir, request)
