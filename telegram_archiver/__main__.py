from telegram_archiver.main import run

run()
