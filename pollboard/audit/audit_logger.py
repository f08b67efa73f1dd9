# pollboard/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from datetime import datetime, timezone
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

# Security audit trail (logins, logouts, denied access, resets, event deletions).
# JSON lines, each entry hash-chained to the previous one and signed with Ed25519.
# Separate from the vote log, which is poll data.

logger = logging.getLogger(__name__)

KEY_FILE_NAME = 'audit_signing_key.pem'


def _canonical(entry):
    return json.dumps(entry, sort_keys=True, default=str).encode()


def load_or_create_signing_key(key_path):
    """Load the PEM signing key at key_path, creating it on first use."""
    if os.path.exists(key_path):
        with open(key_path, 'rb') as f:
            key = serialization.load_pem_private_key(f.read(), password=None)
        if not isinstance(key, Ed25519PrivateKey):
            raise ValueError(f"{key_path} does not hold an Ed25519 private key")
        return key

    key = Ed25519PrivateKey.generate()
    pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption())
    directory = os.path.dirname(key_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    with os.fdopen(fd, 'wb') as f:
        f.write(pem)
    logger.info(f"Generated audit signing key at {key_path}")
    return key


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None, key_path=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.previous_hash = None
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        # The key must survive restarts or the existing chain stops verifying
        self.signing_key = signing_key or load_or_create_signing_key(
            key_path or os.path.join(log_dir, KEY_FILE_NAME)
        )
        self._load_previous_hash()

    def _load_previous_hash(self):
        if not os.path.exists(self.log_file):
            return
        last_line = None
        with open(self.log_file, 'r') as f:
            for line in f:
                if line.strip():
                    last_line = line
        if last_line:
            try:
                self.previous_hash = json.loads(last_line).get('hash')
            except ValueError:
                self.previous_hash = None

    def log_security_event(self, event_type, data, user_id=None):
        """Append one entry. Failures are logged, never raised to the request."""
        # Reading the parent hash and appending must not interleave across threads
        with self._lock:
            body = {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "event_type": event_type,
                "data": data,
                "user_id": user_id,
                "previous_hash": self.previous_hash,
            }
            try:
                payload = _canonical(body)
                entry = dict(body)
                entry['hash'] = hashlib.sha256(payload).hexdigest()
                entry['signature'] = base64.b64encode(self.signing_key.sign(payload)).decode()

                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(entry, default=str) + "\n")

                self.previous_hash = entry['hash']
                return entry
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Audit log write failed for {event_type}: {e}")
                return None

    def read_entries(self, limit=None):
        """Newest first."""
        if not os.path.exists(self.log_file):
            return []
        with open(self.log_file, 'r') as f:
            entries = [json.loads(line) for line in f if line.strip()]
        entries.reverse()
        return entries[:limit] if limit else entries

    def verify_log_integrity(self):
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash = None
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    entry = json.loads(line)
                    signature = base64.b64decode(entry.pop('signature'))
                    entry_hash = entry.pop('hash')
                    if entry.get('previous_hash') != previous_hash:
                        return False
                    payload = _canonical(entry)
                    if hashlib.sha256(payload).hexdigest() != entry_hash:
                        return False
                    public_key.verify(signature, payload)
                    previous_hash = entry_hash
        except (KeyError, ValueError, InvalidSignature):
            return False
        return True
