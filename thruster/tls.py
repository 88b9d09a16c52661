"""TLS certificate materialization.

Turns the ``certificate`` / ``public_key`` values of a Config into file paths
that uvicorn can hand to ``ssl.SSLContext.load_cert_chain``. A value is either
a path (passed through untouched) or inline PEM content, which is written
verbatim to a fresh temporary file.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from typing import List, Union

from thruster.config import CertificateSource, Config
from thruster.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Plain-string values shorter than this are paths; anything longer is PEM.
INLINE_THRESHOLD = 500


def classify(value: str) -> CertificateSource:
    """Apply the length heuristic to a plain-string certificate value."""
    if len(value) < INLINE_THRESHOLD:
        return CertificateSource(kind="path", value=value)
    return CertificateSource(kind="inline", value=value)


def _source(value: Union[str, CertificateSource]) -> CertificateSource:
    if isinstance(value, CertificateSource):
        return value
    return classify(value)


def _write_temp(content: str, prefix: str) -> str:
    name = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            prefix=prefix,
            suffix=".pem",
            delete=False,
            encoding="utf-8",
            newline="",
        ) as handle:
            name = handle.name
            handle.write(content)
    except OSError as e:
        if name is not None and os.path.exists(name):
            os.remove(name)
        raise ConfigError(
            message=f"cannot write {prefix} material to a temporary file: {e}",
            context={"prefix": prefix},
        ) from e
    return name


def resolve(value: Union[str, CertificateSource], prefix: str = "cert") -> str:
    """Resolve a certificate or key value into a path.

    Args:
        value: Path, inline PEM content, or an explicit CertificateSource
        prefix: Temp file name prefix used for inline content

    Returns:
        A filesystem path. Paths are returned unchanged and are not checked for
        existence; a missing file fails later, when the listener starts.

    Raises:
        ConfigError: If inline content cannot be written to a temp file
    """
    source = _source(value)
    if source.kind == "path":
        return source.value

    path = _write_temp(source.value, prefix)
    logger.debug("Wrote inline %s material to %s", prefix, path)
    return path


@dataclass
class TLSMaterial:
    """Resolved certificate and key paths for one listener."""

    certfile: str
    keyfile: str
    temporary_files: List[str] = field(default_factory=list)

    def cleanup(self) -> None:
        """Remove the temp files written for inline material."""
        for path in self.temporary_files:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Could not remove temporary TLS file %s: %s", path, e)
        self.temporary_files = []


def materialize(config: Config) -> TLSMaterial:
    """Resolve the certificate and key of ``config``.

    Both must resolve; when the key fails, a certificate temp file that was
    already written is removed before the ConfigError propagates.

    Raises:
        ConfigError: If either value cannot be materialized
    """
    cert_source = _source(config.certificate)
    key_source = _source(config.public_key)
    created: List[str] = []

    try:
        certfile = resolve(cert_source, prefix="cert")
        if cert_source.kind == "inline":
            created.append(certfile)
        keyfile = resolve(key_source, prefix="key")
        if key_source.kind == "inline":
            created.append(keyfile)
    except ConfigError:
        TLSMaterial(certfile="", keyfile="", temporary_files=created).cleanup()
        raise

    logger.info(
        "TLS material ready (certificate=%s, key=%s)",
        cert_source.kind, key_source.kind,
    )
    return TLSMaterial(certfile=certfile, keyfile=keyfile, temporary_files=created)
