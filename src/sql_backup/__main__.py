"""Allow ``python -m sql_backup``."""

from sql_backup.main import main

main()
