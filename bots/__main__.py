"""Entry point for running the bot as a module via python -m bots"""

import asyncio

from bots.verification import main

if __name__ == "__main__":
    asyncio.run(main())
