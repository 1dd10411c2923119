"""Cross-cutting helpers: logging, errors, time, throttling."""
