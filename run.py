"""Development entry point for running the workbench backend."""

import os
import sys
from workbench.app import create_app
from dotenv import load_dotenv

if getattr(sys, "frozen", False):
    load_dotenv(os.path.join(sys._MEIPASS, ".env"))
else:
    load_dotenv()

app = create_app()

if __name__ == "__main__":
    app.run(host="127.0.0.1", port=int(os.getenv("WORKBENCH_PORT", "5000")))
