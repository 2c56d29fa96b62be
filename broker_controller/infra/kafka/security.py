"""kafka-python security kwargs derived from a broker's credential Secret."""
from __future__ import annotations

import os
import ssl
import tempfile
from typing import Any, Dict

from broker_controller.core.exceptions import ConfigResolutionError
from broker_controller.domain.models.secret import Secret

PROTOCOL_KEY = "protocol"
SASL_MECHANISM_KEY = "sasl.mechanism"
USER_KEY = "user"
PASSWORD_KEY = "password"
CA_CERT_KEY = "ca.crt"
USER_CERT_KEY = "user.crt"
USER_KEY_KEY = "user.key"

_PROTOCOLS = {"PLAINTEXT", "SSL", "SASL_PLAINTEXT", "SASL_SSL"}


def security_options(secret: Secret | None) -> Dict[str, Any]:
    """Return the security kwargs for KafkaAdminClient.

    No secret means a plaintext connection.
    """
    if secret is None:
        return {"security_protocol": "PLAINTEXT"}

    data = secret.data
    protocol = data.get(PROTOCOL_KEY, "PLAINTEXT").upper()
    if protocol not in _PROTOCOLS:
        raise ConfigResolutionError(
            f"secret {secret.namespace}/{secret.name}: unsupported protocol {protocol!r}"
        )

    kw: Dict[str, Any] = {"security_protocol": protocol}
    if protocol.startswith("SASL"):
        kw.update(
            sasl_mechanism=data.get(SASL_MECHANISM_KEY, "PLAIN").upper(),
            sasl_plain_username=data.get(USER_KEY),
            sasl_plain_password=data.get(PASSWORD_KEY),
        )
    if protocol.endswith("SSL"):
        kw["ssl_context"] = _ssl_context(secret)
    return kw


def _ssl_context(secret: Secret) -> ssl.SSLContext:
    data = secret.data
    ctx = ssl.create_default_context(cadata=data.get(CA_CERT_KEY) or None)
    cert, key = data.get(USER_CERT_KEY), data.get(USER_KEY_KEY)
    if cert and key:
        # load_cert_chain only reads from paths; the files live for the call only
        with tempfile.TemporaryDirectory() as tmp:
            cert_path = os.path.join(tmp, "user.crt")
            key_path = os.path.join(tmp, "user.key")
            with open(cert_path, "w") as f:
                f.write(cert)
            with open(key_path, "w") as f:
                f.write(key)
            try:
                ctx.load_cert_chain(cert_path, key_path)
            except ssl.SSLError as exc:
                raise ConfigResolutionError(
                    f"secret {secret.namespace}/{secret.name}: invalid client certificate: {exc}"
                ) from exc
    return ctx
