"""Test doubles shared across test modules."""


class FakeBackend:
    """Records every call and answers with canned text (or raises)."""

    def __init__(self, reply="[]", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, image, prompt, thinking_budget):
        self.calls.append({"image": image, "prompt": prompt, "thinking_budget": thinking_budget})
        if self.error is not None:
            raise self.error
        return self.reply


class FakeDevice:
    def __init__(self):
        self.released = 0

    def release(self):
        self.released += 1
