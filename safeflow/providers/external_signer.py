"""
External hardware-signer process.

Wraps ``cast wallet sign`` so a Ledger or Trezor signs either the raw Safe
digest (as a personal message) or the full EIP-712 description. Failures are
fatal: hardware signing is never retried.
"""

from __future__ import annotations

import json
import subprocess
from typing import Any, Callable, Dict, List, Optional

import structlog

from ..core.errors import SigningError

logger = structlog.stdlib.get_logger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]


class ExternalSignerProcess:
    name = "external_signer"

    def __init__(self, executable: str = "cast", runner: Optional[Runner] = None) -> None:
        self.executable = executable
        self._runner = runner or subprocess.run

    def sign_hash(self, digest: bytes, *, device: str, derivation_path: str) -> bytes:
        """Sign ``digest`` as an EIP-191 personal message."""
        args = self._base_args(device, derivation_path) + ["0x" + digest.hex()]
        return self._run(args)

    def sign_typed_data(self, typed_data: Dict[str, Any], *, device: str, derivation_path: str) -> bytes:
        args = self._base_args(device, derivation_path) + ["--data", json.dumps(typed_data)]
        return self._run(args)

    def _base_args(self, device: str, derivation_path: str) -> List[str]:
        return [
            self.executable,
            "wallet",
            "sign",
            f"--{device}",
            "--mnemonic-derivation-path",
            derivation_path,
        ]

    def _run(self, args: List[str]) -> bytes:
        logger.info("external_sign_requested", executable=self.executable, device=args[3])
        try:
            completed = self._runner(args, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise SigningError(f"Could not start {self.executable}: {exc}") from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            logger.error("external_sign_failed", returncode=completed.returncode, stderr=stderr)
            raise SigningError(
                f"{self.executable} exited with status {completed.returncode}",
                returncode=completed.returncode,
                stderr=stderr,
            )

        lines = (completed.stdout or "").strip().splitlines()
        output = lines[-1].strip() if lines else ""
        hex_data = output[2:] if output.startswith("0x") else output
        try:
            signature = bytes.fromhex(hex_data)
        except ValueError:
            signature = b""
        if len(signature) != 65:
            raise SigningError(
                f"Unexpected signer output: {output!r}",
                returncode=completed.returncode,
                stderr=(completed.stderr or "").strip(),
            )
        return signature
