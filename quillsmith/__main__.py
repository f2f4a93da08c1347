from quillsmith.cli import run

run()
