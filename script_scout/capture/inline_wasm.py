# script_scout/capture/inline_wasm.py
"""
Extraction of WebAssembly modules embedded in JavaScript as base64 data URLs.
"""
from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path
from typing import List, Union

from script_scout.capture.classifier import is_wasm_magic
from script_scout.capture.paths import inline_path
from script_scout.logger import LOGGER_NAME
from script_scout.utils import write_bytes

__all__ = ["DATA_URL_RE", "extract_inline_wasm", "save_inline_wasm"]

DATA_URL_RE = re.compile(r"data:application/wasm;base64,([A-Za-z0-9+/=]+)")

logger = logging.getLogger(LOGGER_NAME)


def extract_inline_wasm(js_text: Union[str, bytes]) -> List[bytes]:
    """Decode every embedded ``data:application/wasm;base64,...`` module.

    Payloads that are not valid base64, or that decode to something without
    the WASM preamble, are skipped.
    """
    if isinstance(js_text, bytes):
        js_text = js_text.decode("utf-8", errors="replace")
    modules: List[bytes] = []
    for match in DATA_URL_RE.finditer(js_text):
        try:
            decoded = base64.b64decode(match.group(1))
        except (binascii.Error, ValueError):
            continue
        if is_wasm_magic(decoded):
            modules.append(decoded)
    return modules


async def save_inline_wasm(js_body: Union[str, bytes], output_root: Union[str, Path]) -> List[Path]:
    """Write each embedded module to ``inline/embedded_*.wasm``; return the paths."""
    written: List[Path] = []
    for module in extract_inline_wasm(js_body):
        path = inline_path(output_root, ".wasm", prefix="embedded_")
        await write_bytes(path, module)
        logger.info("[INLINE] %d bytes of embedded WASM -> %s", len(module), path)
        written.append(path)
    return written
