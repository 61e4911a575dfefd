"""
TOTP computation (RFC 6238, HMAC-SHA1).

Pure functions of a base32 secret and a time-step index. No clock access
happens here: callers pass the time in, which keeps every result
reproducible against fixed vectors.
"""
import hmac

import pyotp


class TotpEngine:
    """Stateless TOTP generator and window matcher."""

    def __init__(self, period: int = 30, digits: int = 6):
        self.period = period
        self.digits = digits

    def time_step(self, unix_time: float) -> int:
        """Index of the 30-second bucket containing ``unix_time``."""
        return int(unix_time // self.period)

    def generate(self, secret: str, time_step: int) -> str:
        """Code for ``secret`` at ``time_step``, zero-padded to ``digits``.

        HMAC over the 8-byte big-endian counter followed by dynamic
        truncation, which is exactly HOTP evaluated at the time step.
        """
        return pyotp.HOTP(secret, digits=self.digits).at(time_step)

    def matches(self, secret: str, code: str, time_step: int, window: int) -> bool:
        """True if ``code`` equals the code of any step in [step-window, step+window].

        Every candidate in the window is computed so the work done does not
        depend on where (or whether) the code matched.
        """
        matched = False
        for step in range(time_step - window, time_step + window + 1):
            if step < 0:
                continue
            candidate = self.generate(secret, step)
            if hmac.compare_digest(candidate, code):
                matched = True
        return matched
