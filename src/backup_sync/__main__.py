"""Allow `python -m backup_sync FILE`."""

from backup_sync.main import run

if __name__ == "__main__":
    run()
