"""PlantUML text -> .puml / PNG / SVG files.

Primary:  local JAR via `java -jar plantuml.jar -t<format> -pipe`.
Fallback: a PlantUML HTTP server, only when a server URL is configured.

JAR location resolution order:
  1. `plantuml.jar_path` from the configuration
  2. PLANTUML_JAR_PATH env var
  3. ./plantuml.jar
"""
import os
import logging
import shutil
import subprocess
import zlib
from pathlib import Path
from typing import Iterable, List, Optional

import httpx

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("png", "svg")

_PLANTUML_ALPHABET = (
    "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"
)


class RenderError(Exception):
    """PlantUML rejected the markup or no renderer could be reached."""


def _encode3bytes(b1: int, b2: int, b3: int) -> str:
    c1 = b1 >> 2
    c2 = ((b1 & 0x3) << 4) | (b2 >> 4)
    c3 = ((b2 & 0xF) << 2) | (b3 >> 6)
    c4 = b3 & 0x3F
    return "".join(_PLANTUML_ALPHABET[c & 0x3F] for c in (c1, c2, c3, c4))


def plantuml_encode(text: str) -> str:
    """Encode PlantUML text using deflate + PlantUML's base64 alphabet for URL embedding."""
    data = zlib.compress(text.encode("utf-8"))[2:-4]  # raw deflate

    result = []
    for i in range(0, len(data), 3):
        chunk = data[i:i + 3] + bytes(3 - len(data[i:i + 3]))
        result.append(_encode3bytes(chunk[0], chunk[1], chunk[2]))
    return "".join(result)


def write_text(text: str, output_path: str) -> str:
    """Write text as UTF-8, creating parent directories. Returns the path."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info("PlantUML file saved to: %s", output_path)
    return output_path


class PlantUMLRenderer:
    """Renders PlantUML text to image bytes and writes diagram artifacts."""

    def __init__(self, jar_path: Optional[str] = None, server_url: Optional[str] = None,
                 timeout: float = 60):
        self.jar_path = self._resolve_jar_path(jar_path)
        self.server_url = server_url.rstrip("/") if server_url else None
        self.timeout = timeout

    @staticmethod
    def _resolve_jar_path(jar_path: Optional[str]) -> Optional[Path]:
        candidate = jar_path or os.environ.get("PLANTUML_JAR_PATH") or "plantuml.jar"
        path = Path(candidate)
        return path if path.is_file() else None

    @property
    def jar_available(self) -> bool:
        return self.jar_path is not None and shutil.which("java") is not None

    def render(self, puml: str, fmt: str) -> bytes:
        """
        Render PlantUML text to an image.

        Args:
            puml: PlantUML source text (including @startuml/@enduml).
            fmt: 'png' or 'svg'.

        Returns:
            The image bytes.

        Raises:
            RenderError: If the markup is invalid or no renderer is available.
        """
        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported image format: {fmt}")
        if self.jar_available:
            return self._render_via_jar(puml, fmt)
        if self.server_url:
            return self._render_via_http(puml, fmt)
        raise RenderError(
            "No PlantUML renderer available: set plantuml.jar_path or PLANTUML_JAR_PATH "
            "(java must be on PATH) or configure plantuml.server_url"
        )

    def _render_via_jar(self, puml: str, fmt: str) -> bytes:
        cmd = [
            "java",
            "-Djava.awt.headless=true",
            "-jar",
            str(self.jar_path),
            "-charset",
            "UTF-8",
            f"-t{fmt}",
            "-pipe",
        ]
        try:
            result = subprocess.run(
                cmd,
                input=puml.encode("utf-8"),
                capture_output=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RenderError(f"PlantUML JAR timed out after {self.timeout}s") from e
        except OSError as e:
            raise RenderError(f"PlantUML JAR execution failed: {e}") from e

        if result.returncode != 0:
            # PlantUML still draws an error image on syntax errors; the exit code tells.
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            raise RenderError(
                f"PlantUML failed to generate image (exit={result.returncode}): {stderr[:300] or '(empty)'}"
            )
        return result.stdout

    def _render_via_http(self, puml: str, fmt: str) -> bytes:
        url = f"{self.server_url}/{fmt}/{plantuml_encode(puml)}"
        logger.debug("Rendering PlantUML via HTTP %s", self.server_url)
        try:
            response = httpx.get(url, timeout=self.timeout, follow_redirects=True)
        except httpx.RequestError as e:
            raise RenderError(f"PlantUML server request failed: {e}") from e
        if response.status_code != 200:
            raise RenderError(f"PlantUML server returned {response.status_code}")
        return response.content

    def write_image(self, puml: str, output_path: str, fmt: str) -> str:
        image = self.render(puml, fmt)
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)
        logger.info("Diagram image saved to: %s", output_path)
        return output_path

    def write_diagram(self, puml: str, base_path: str, formats: Iterable[str] = SUPPORTED_FORMATS,
                      render: bool = True) -> List[str]:
        """
        Write <base_path>.puml and, when render is set, one image per format.

        Returns:
            Paths of the written files.
        """
        written = [write_text(puml, base_path + ".puml")]
        if render:
            for fmt in formats:
                written.append(self.write_image(puml, f"{base_path}.{fmt}", fmt))
        return written
