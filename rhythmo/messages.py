"""Centralized message/i18n system.

Primary language: EN. Optional DE toggle via config.language ('en'|'de').
Placeholders use str.format fields, filled by msg(key, **fields).
"""

_EN = {
	"PLAY_USAGE": "Give me a URL or search text! Example:\n`{prefix}play https://...`",
	"JOIN_REQUIRED": "You need to be in a voice channel ❗",
	"VOICE_CONNECT_FAIL": "Could not connect to your voice channel",
	"SEARCHING": "🔍 Searching: **{query}**",
	"RESOLVE_ERROR": "❗ Could not process that song: {error}",
	"QUEUE_FULL": "The queue is full ({limit} tracks)",
	"TRACK_ADDED": "🎶 **{title}** was added to the queue!",
	"NOW_PLAYING": "▶️ Now playing: **{title}** ({duration}) · requested by {requester}",
	"TRACK_FAILED": "⚠️ Skipping **{title}**: {error}",
	"STREAM_FAILED": "⚠️ Playback of **{title}** failed, moving on",
	"NOT_CONNECTED": "I'm not in a voice channel anymore, queue dropped",
	"IDLE_GOODBYE": "Nothing left to play, leaving the channel. See you ✨",
	"STOPPED": "⏹️ Playback stopped.",
	"SKIPPED": "⏭️ Song skipped.",
	"NOTHING_PLAYING": "Nothing is playing right now",
	"PAUSED": "⏸️ Paused.",
	"NOT_PAUSED": "Nothing is paused right now",
	"RESUMED": "▶️ Here we go again.",
	"QUEUE_EMPTY": "The queue is empty.",
	"QUEUE_HEADER": "📜 **Queue:**",
	"STATS": "📊 **Stats**\nSongs played: {songs}\nCommands run: {commands}\nUptime: {uptime}",
	"PREFIX_CURRENT": "Current prefix: `{prefix}`",
	"PREFIX_SET": "✅ Prefix set to `{prefix}`",
	"PREFIX_INVALID": "❗ Prefix must be 1 to {limit} characters without spaces",
	"PREFIX_PERSIST_FAIL": "❗ Could not save the new prefix, keeping `{prefix}`",
	"COMMAND_ERROR": "Something went wrong with that command, it has been logged.",
	"HELP_TITLE": "🎵 Rhythmo Music Bot — Commands",
	"DASHBOARD_TITLE": "🎛️ Dashboard",
}

_DE = {
	"PLAY_USAGE": "Gib eine URL an! Beispiel:\n`{prefix}play https://...`",
	"JOIN_REQUIRED": "Du musst in einem Voice-Channel sein ❗",
	"VOICE_CONNECT_FAIL": "Konnte dem Voice-Channel nicht beitreten",
	"SEARCHING": "🔍 Suche: **{query}**",
	"RESOLVE_ERROR": "❗ Fehler beim Verarbeiten des Songs: {error}",
	"QUEUE_FULL": "Die Queue ist voll ({limit} Songs)",
	"TRACK_ADDED": "🎶 **{title}** wurde zur Queue hinzugefügt!",
	"NOW_PLAYING": "▶️ Jetzt läuft: **{title}** ({duration}) · gewünscht von {requester}",
	"TRACK_FAILED": "⚠️ Überspringe **{title}**: {error}",
	"STREAM_FAILED": "⚠️ Wiedergabe von **{title}** fehlgeschlagen, weiter geht's",
	"NOT_CONNECTED": "Ich bin in keinem Voice-Channel mehr, Queue verworfen",
	"IDLE_GOODBYE": "Nichts mehr zu spielen, ich gehe. Bis bald ✨",
	"STOPPED": "⏹️ Wiedergabe gestoppt.",
	"SKIPPED": "⏭️ Song übersprungen.",
	"NOTHING_PLAYING": "Gerade läuft nichts",
	"PAUSED": "⏸️ Pause.",
	"NOT_PAUSED": "Gerade ist nichts pausiert",
	"RESUMED": "▶️ Weiter geht's.",
	"QUEUE_EMPTY": "Queue ist leer.",
	"QUEUE_HEADER": "📜 **Queue:**",
	"STATS": "📊 **Statistik**\nGespielte Songs: {songs}\nAusgeführte Befehle: {commands}\nLaufzeit: {uptime}",
	"PREFIX_CURRENT": "Aktueller Prefix: `{prefix}`",
	"PREFIX_SET": "✅ Prefix ist jetzt `{prefix}`",
	"PREFIX_INVALID": "❗ Der Prefix muss 1 bis {limit} Zeichen ohne Leerzeichen haben",
	"PREFIX_PERSIST_FAIL": "❗ Neuer Prefix konnte nicht gespeichert werden, bleibe bei `{prefix}`",
	"COMMAND_ERROR": "Bei diesem Befehl ist etwas schiefgelaufen, der Fehler wurde protokolliert.",
	"HELP_TITLE": "🎵 Rhythmo Musik Bot — Befehle",
	"DASHBOARD_TITLE": "🎛️ Dashboard",
}

_ACTIVE = _EN

def set_language(lang: str):
	global _ACTIVE
	if lang and lang.lower().startswith("de"):
		_ACTIVE = _DE
	else:
		_ACTIVE = _EN

def msg(key: str, **fields) -> str:
	text = _ACTIVE.get(key, _EN.get(key, key))
	if fields:
		try:
			return text.format(**fields)
		except (KeyError, IndexError):
			return text
	return text
