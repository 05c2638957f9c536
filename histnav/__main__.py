from histnav.cli import run

run()
