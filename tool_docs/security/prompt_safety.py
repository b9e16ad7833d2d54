"""Prompt injection detection and mitigation for catalog text sent to an LLM."""

import re
from typing import List


class PromptInjectionDetector:
    """Detects and neutralises prompt injection attempts in tool descriptions."""

    INJECTION_PATTERNS = [
        r'ignore\s+(previous|above|all)\s+instructions',
        r'disregard\s+(the\s+)?(previous|above|system)',
        r'forget\s+everything',
        r'new\s+instructions?:',
        r'system\s*:',
        r'you\s+are\s+now',
        r'roleplay\s+as',
        r'pretend\s+you',
    ]

    MAX_LENGTH = 2000

    def sanitize_text(self, text: str) -> str:
        """
        Make catalog text safe to embed in a prompt.

        Control characters are flattened to spaces, length is capped, and
        any sentence matching an injection pattern is replaced with a
        neutral marker.

        Args:
            text: Description or option text from the CLI JSON

        Returns:
            Sanitized text (empty string for empty input)
        """
        if not text:
            return ""

        sanitized = re.sub(r'[\r\n\t]+', ' ', text)
        sanitized = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', sanitized).strip()

        if len(sanitized) > self.MAX_LENGTH:
            sanitized = sanitized[:self.MAX_LENGTH]

        for pattern in self.INJECTION_PATTERNS:
            sanitized = re.sub(
                rf'[^.!?]*{pattern}[^.!?]*[.!?]?',
                '[removed]',
                sanitized,
                flags=re.IGNORECASE,
            )

        return sanitized.strip()

    def detect_injection(self, text: str) -> bool:
        """True if text contains a known injection pattern."""
        return bool(self.matched_patterns(text))

    def matched_patterns(self, text: str) -> List[str]:
        return [
            pattern for pattern in self.INJECTION_PATTERNS
            if re.search(pattern, text or "", re.IGNORECASE)
        ]
