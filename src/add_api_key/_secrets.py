"""Decrypt KMS-encrypted key values.

'why': a failed decryption must stop the key, never fall back to using the ciphertext
"""
from __future__ import annotations

import base64
import binascii

from ._errors import DecryptionError
from ._gateway import Decryptor
from ._logging import Reporter


def decrypt_key_value(ciphertext: str, kms_key_region: str, decryptor: Decryptor, reporter: Reporter) -> str:
    """Return the plaintext of a base64 KMS ciphertext.

    Whitespace and line breaks inside the ciphertext are ignored; any other non-base64 character is rejected.
    """

    preview = ciphertext[:10]
    try:
        blob = base64.b64decode("".join(ciphertext.split()), validate=True)
        plaintext = decryptor.decrypt(blob).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        reporter.error(f'Value "{preview}..." can not be decrypted properly with keys in KMS in region {kms_key_region}.')
        raise DecryptionError(f"api key value could not be decrypted: {exc}") from exc
    except Exception as exc:
        reporter.error(f'Value "{preview}..." can not be decrypted properly with keys in KMS in region {kms_key_region}.')
        raise DecryptionError(f"KMS decrypt failed in {kms_key_region}: {exc}") from exc

    reporter.info(f'Successfully decrypted value of "{preview}..." using KMS key in {kms_key_region}')
    return plaintext
