# Searchable single-select picker used for region and service selection

from typing import List, Optional, Sequence

from .textinput import TextInput


def filter_items(items: Sequence[str], query: str) -> List[str]:
	"""Case-insensitive substring matches, in the order of `items`."""
	q = query.lower()
	return [item for item in items if q in item.lower()]


class OptionSelector:
	"""A lightweight searchable list. Inactive until `open()` is called."""

	def __init__(self, title: str, items: Sequence[str] = ()):
		self.title = title
		self.items: List[str] = list(items)
		self.filtered: List[str] = list(items)
		self.cursor = 0
		self.active = False
		self.input = TextInput(placeholder="type to filter")

	@property
	def query(self) -> str:
		return self.input.value

	def open(self, items: Sequence[str], current: Optional[str] = None):
		self.items = list(items)
		self.filtered = list(items)
		self.cursor = self.filtered.index(current) if current in self.filtered else 0
		self.input.reset()
		self.input.focus()
		self.active = True

	def close(self):
		self.active = False
		self.input.blur()

	def current(self) -> str:
		if not self.filtered or self.cursor >= len(self.filtered):
			return ""
		return self.filtered[self.cursor]

	def handle_key(self, key: str) -> Optional[str]:
		"""Process a key. Returns the chosen item once Enter closes the picker.

		Escape closes without a choice (None). Enter on an empty list returns "".
		"""
		if key == "esc":
			self.close()
			return None
		if key == "enter":
			choice = self.current()
			self.close()
			return choice
		if key == "up":
			if self.cursor > 0:
				self.cursor -= 1
			return None
		if key == "down":
			if self.cursor < len(self.filtered) - 1:
				self.cursor += 1
			return None
		if self.input.handle_key(key):
			self._apply_filter()
		return None

	def _apply_filter(self):
		self.filtered = filter_items(self.items, self.input.value)
		if not self.filtered:
			self.cursor = 0
		elif self.cursor >= len(self.filtered):
			self.cursor = len(self.filtered) - 1

	def view(self, width: int, height: int = 0) -> str:
		lines = [self.title, "", self.input.view(), ""]
		if not self.filtered:
			lines.append("No matches")
		else:
			visible = len(self.filtered)
			if height > 0:
				visible = max(1, height - len(lines) - 2)
			start = min(max(0, self.cursor - visible + 1), max(0, len(self.filtered) - visible))
			for i, item in enumerate(self.filtered[start:start + visible], start=start):
				marker = "> " if i == self.cursor else "  "
				lines.append(marker + item)
		lines.append("")
		lines.append("up/down to move, type to filter, Enter to select, Esc to cancel")
		return "\n".join(line[:width] for line in lines)
