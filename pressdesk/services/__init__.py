"""Service layer: Gemini access, prompt execution and report synthesis."""
