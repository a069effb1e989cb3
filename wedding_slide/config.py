import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
TEMPLATES_DIR = BASE_DIR / "templates"

LINE_CHANNEL_SECRET = os.getenv("LINE_CHANNEL_SECRET", "dummy")
LINE_CHANNEL_ACCESS_TOKEN = os.getenv("LINE_CHANNEL_ACCESS_TOKEN", "dummy")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

UPLOAD_DIR_BASE = Path("/tmp/uploads")
PENDING_DIR_NAME = "before"
DISPLAYING_DIR_NAME = "displaying"
DONE_DIR_NAME = "done"
IMAGE_SUFFIX = ".jpg"

MAX_IMAGES_PER_SET = 4

SLIDESHOW_REFRESH_SECONDS = 30
SLIDESHOW_FETCH_TIMEOUT_SECONDS = 10

REPLY_TEXT_INFO = "結婚式の画像を送信すると、プロジェクターにその画像が映し出されます！"
REPLY_IMAGE_SAVED = "ありがとうございます！画像を受け取りました！"
REPLY_IMAGE_FAILED = "画像の処理中にエラーが発生しました😭"
REPLY_UNSUPPORTED = "対応していない形式です。" + REPLY_TEXT_INFO
