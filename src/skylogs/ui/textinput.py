# Single-line text input


def is_printable(key: str) -> bool:
	return len(key) == 1 and key.isprintable()


class TextInput:
	"""Editable query line used by the pickers and the log group search."""

	def __init__(self, placeholder: str = "", prompt: str = "> "):
		self.value = ""
		self.placeholder = placeholder
		self.prompt = prompt
		self.focused = False

	def focus(self):
		self.focused = True

	def blur(self):
		self.focused = False

	def reset(self):
		self.value = ""

	def handle_key(self, key: str) -> bool:
		"""Apply an editing key. Returns True when the value changed."""
		previous = self.value
		if key == "backspace":
			self.value = self.value[:-1]
		elif key == "ctrl+u":
			self.value = ""
		elif key == "ctrl+w":
			self.value = self.value.rstrip()
			cut = self.value.rfind(" ")
			self.value = self.value[:cut + 1] if cut >= 0 else ""
		elif is_printable(key):
			self.value += key
		return self.value != previous

	def view(self) -> str:
		if not self.value and not self.focused:
			return self.prompt + self.placeholder
		cursor = "_" if self.focused else ""
		return self.prompt + self.value + cursor
