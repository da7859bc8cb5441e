'''Deferred calls on the current application's event loop.

call_soon() is the "run later" primitive the Deferred factories use.
'''
from . import logmod
from .errors import NoApplication

def _loop():
	app = logmod.current_application()
	if app is None:
		raise NoApplication("no Application to schedule on; create one first")
	return app.loop

class Timer:
	def __init__(self, loop, t, f, args, repeat=False):
		self.loop = loop
		self.interval = t
		self.f = f
		self.args = args
		self.repeat = repeat
		self.cancelled = False
		self.fired = False
		self._handle = None
		self._arm()

	def _arm(self):
		self._handle = self.loop.call_later(self.interval, self._fire)

	def _fire(self):
		self._handle = None
		self.fired = True
		self.f(*self.args)
		if self.repeat and not self.cancelled:
			self._arm()

	@property
	def pending(self):
		return self._handle is not None and not self.cancelled

	@property
	def countdown(self):
		if not self.pending:
			return 0.0
		return max(0.0, self._handle.when() - self.loop.time())

	def cancel(self):
		if self._handle is not None:
			self._handle.cancel()
			self._handle = None
		self.cancelled = True

def call_soon(f, *args):
	return _loop().call_soon(f, *args)

def call_later(t, f, *args):
	return Timer(_loop(), t, f, args)

def call_every(t, f, *args):
	return Timer(_loop(), t, f, args, repeat=True)
