"""All magic numbers and configuration constants."""

CHUNK_RUNE_LIMIT = 1500                      # runes per synthesis call (provider caps input at 4096)
REWRITE_CHUNK_BYTES = 8 * 1024               # bytes per rewrite call
SENTENCE_BREAK = "。"                        # preferred cut point
DEFAULT_BREAK_CHAIN = (SENTENCE_BREAK, "\n")
ARTIFACT_NAME_MAX_LENGTH = 100               # code points
ARTIFACT_NAME_REPLACEMENT = "_"
UNTITLED_NAME = "untitled"
AUDIO_FORMAT = "mp3"
AUDIO_EXTENSION = ".mp3"
PLAIN_TEXT_MIN_RUNES = 300                   # below this, prefer the HTML body if it is longer
CHUNK_SYNTH_TIMEOUT = 300.0                  # seconds per synthesis call
RUN_TIMEOUT = 600.0                          # seconds for a whole message run
REWRITE_TIMEOUT = 180.0                      # seconds per rewrite call
GOOGLE_HTTP_TIMEOUT = 60.0                   # socket timeout for Gmail/Drive
OPENAI_TTS_MODEL = "tts-1"
OPENAI_TTS_VOICE = "alloy"
OPENAI_REWRITE_MODEL = "gpt-4o"
OPENAI_REWRITE_MAX_TOKENS = 8192
EDGE_TTS_VOICE = "ja-JP-KeitaNeural"
EDGE_TTS_RATE = "+0%"
TTS_PROVIDERS = ("openai", "edge")
GMAIL_USER = "me"
GMAIL_INBOX_LABEL = "INBOX"
GMAIL_READONLY_SCOPE = "https://www.googleapis.com/auth/gmail.readonly"
DRIVE_FILE_SCOPE = "https://www.googleapis.com/auth/drive.file"
DRIVE_UPLOAD_CHUNK_BYTES = 2 * 1024 * 1024
AUDIO_DIR = "audio"
TEXT_DIR = "text"
SECRETS_DIR = "secrets"
LEDGER_PATH = "log/downloaded_ids.txt"
OPENAI_KEY_FILENAME = "openai_api_key.txt"
TOKEN_FILENAME = "token.json"
PROMPT_PATH = "prompt/convert_text_raw_to_podcast.txt"
RAW_TEXT_SUBDIR = "raw_txt"
PODCAST_TEXT_SUBDIR = "podcast_txt"
MANIFEST_FILENAME = "output.json"
VERSION = "0.1.0"
