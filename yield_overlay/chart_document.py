"""SVG chart documents and the calibration they carry."""
from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator, Optional, Union

import requests

from yield_overlay.calibration import ChartCalibration, parse_chart_calibration
from yield_overlay.coordinate_mapper import get_logical_coordinates
from yield_overlay.errors import CalibrationUnavailable, ChartLoadError
from yield_overlay.models import PixelPoint

SVG_NS = "http://www.w3.org/2000/svg"
ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")

_LOGGER = logging.getLogger("YieldOverlay.Chart")


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if tag.startswith("{") else tag


class ChartDocument:
    """A loaded SVG chart.

    The drawing content is opaque; only the root ``xlm``/``ylm`` attributes are
    interpreted. Calibration is computed once per load and is ``None`` until both
    axis descriptors parse.
    """

    def __init__(self, root: ET.Element, *, source: str = "<string>") -> None:
        if _local_name(root.tag).lower() != "svg":
            raise ChartLoadError(f"{source}: root element is <{_local_name(root.tag)}>, expected <svg>")
        self._root = root
        self._source = source
        self._namespace = root.tag[1:].split("}", 1)[0] if root.tag.startswith("{") else ""
        self._calibration = parse_chart_calibration(root.attrib)
        if self._calibration is None:
            _LOGGER.warning("Chart %s has no usable calibration; live point disabled", source)
        else:
            _LOGGER.debug("Loaded chart %s with calibration %s", source, self._calibration)

    # Loading --------------------------------------------------------------

    @classmethod
    def from_string(cls, text: Union[str, bytes], *, source: str = "<string>") -> "ChartDocument":
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ChartLoadError(f"{source}: invalid SVG content ({exc})") from exc
        return cls(root, source=source)

    @classmethod
    def from_path(cls, path: Path) -> "ChartDocument":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise ChartLoadError(f"Failed to read chart {path}: {exc}") from exc
        return cls.from_string(data, source=str(path))

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> "ChartDocument":
        http = session or requests.Session()
        try:
            response = http.get(url, timeout=timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ChartLoadError(f"Failed to load SVG from {url}: {exc}") from exc
        finally:
            if session is None:
                http.close()
        return cls.from_string(response.content, source=url)

    @classmethod
    def load(cls, location: str, *, timeout: float = 15.0) -> "ChartDocument":
        """Load from an http(s) URL or a filesystem path."""

        if location.startswith(("http://", "https://")):
            return cls.from_url(location, timeout=timeout)
        return cls.from_path(Path(location))

    # Accessors ------------------------------------------------------------

    @property
    def root(self) -> ET.Element:
        return self._root

    @property
    def source(self) -> str:
        return self._source

    @property
    def calibration(self) -> Optional[ChartCalibration]:
        return self._calibration

    def require_calibration(self) -> ChartCalibration:
        if self._calibration is None:
            raise CalibrationUnavailable(f"Chart {self._source} has no usable xlm/ylm calibration")
        return self._calibration

    def qualify(self, tag: str) -> str:
        """Return *tag* in the document's namespace."""

        return f"{{{self._namespace}}}{tag}" if self._namespace else tag

    def iter_elements(self, tag: str) -> Iterator[ET.Element]:
        return self._root.iter(self.qualify(tag))

    def get_logical_coordinates(self, domain_x: float, domain_y: float) -> Optional[PixelPoint]:
        return get_logical_coordinates(domain_x, domain_y, self._calibration)

    # Serialisation --------------------------------------------------------

    def to_bytes(self) -> bytes:
        return ET.tostring(self._root, encoding="utf-8")

    def write(self, path: Path) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        tmp_path.write_bytes(self.to_bytes())
        tmp_path.replace(target)
