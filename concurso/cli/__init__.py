# Terminal interface (typer + rich)
