from rolesync.cli import app

app(prog_name="rolesync")
