"""Pure text and retry helpers used by the publisher."""
