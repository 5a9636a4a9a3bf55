from timer_cli.main import app

app(prog_name="timer_cli")
