"""botline CLI bootstrap."""

from botline.cli import app

if __name__ == "__main__":
    app()
