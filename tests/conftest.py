import io

import pytest

from pledge import logmod
from pledge.app import Application
from pledge.timers import call_later


@pytest.fixture
def logbuf():
	return io.StringIO()


@pytest.fixture
def app(logbuf):
	"""An Application logging into logbuf; it is the current application."""
	application = Application(logger=logmod.Logger(fd=logbuf))
	yield application
	application.close()


@pytest.fixture
def run_until_settled(app):
	"""Run the app's loop until cell settles, or give up after timeout."""
	def run(cell, timeout=2.0):
		if not cell.pending:
			return cell
		cell.finally_(app.halt)
		guard = call_later(timeout, app.halt)
		app.run()
		guard.cancel()
		return cell
	return run
