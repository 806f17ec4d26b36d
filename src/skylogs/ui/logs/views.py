# Rendering for the log browser: group list on the left, tail on the right

from typing import List

SEPARATOR = " | "


def _fit(line: str, width: int) -> str:
	if width <= 0:
		return ""
	if len(line) > width:
		return line[:width]
	return line.ljust(width)


def format_bytes(size: int) -> str:
	value = float(size)
	for unit in ("B", "KB", "MB", "GB", "TB"):
		if value < 1024 or unit == "TB":
			return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
		value /= 1024
	return f"{size} B"


def format_event(event) -> str:
	message = " ".join(event.message.split())
	return f"{event.isoformat()} | {event.log_group} | {message}"


def render_groups(model, width: int, height: int) -> List[str]:
	header = "Log Groups"
	if model.loading:
		header += " (loading...)"
	lines = [header]
	if model.searching or model.search.value:
		lines.append(model.search.view())
	else:
		lines.append("Press / to search")

	groups = model.filtered_groups()
	footer = ["", f"Selected: {len(model.selected)} | Total: {len(model.groups)}"]
	if model.status:
		footer.append(model.status)

	room = max(1, height - len(lines) - len(footer))
	if not groups:
		lines.append("no log groups")
	else:
		start = min(max(0, model.cursor - room + 1), max(0, len(groups) - room))
		for i, group in enumerate(groups[start:start + room], start=start):
			marker = ">" if i == model.cursor else " "
			check = "x" if group.name in model.selected else " "
			retention = f"{group.retention_days}d" if group.retention_days else "never expires"
			lines.append(f"{marker} [{check}] {group.name} ({retention}, {format_bytes(group.stored_bytes)})")
	while len(lines) < height - len(footer):
		lines.append("")
	return [_fit(line, width) for line in (lines + footer)[:height]]


def render_tail(model, width: int, height: int) -> List[str]:
	if model.tailing:
		lines = ["Tail (pgup/pgdn scroll, q/esc stop)"]
	elif len(model.window):
		lines = ["Tail (stopped, t to restart)"]
	else:
		return [_fit(line, width) for line in ("Tail", "Press t to start tailing selected groups")]

	room = max(1, height - 1)
	events = model.window.events
	end = len(events) - model.scroll
	for event in events[max(0, end - room):end]:
		lines.append(format_event(event))
	if len(lines) == 1:
		lines.append("waiting for events...")
	return [_fit(line, width) for line in lines]


def render(model, width: int, height: int) -> str:
	if width <= 0 or height <= 0:
		return "loading..."
	left_width = width // 2
	right_width = max(0, width - left_width - len(SEPARATOR))
	left = render_groups(model, left_width, height)
	right = render_tail(model, right_width, height)
	rows = []
	for i in range(height):
		l = left[i] if i < len(left) else _fit("", left_width)
		r = right[i] if i < len(right) else ""
		rows.append((l + SEPARATOR + r).rstrip())
	return "\n".join(rows)
