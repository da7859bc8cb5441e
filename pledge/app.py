import asyncio
import functools
import threading
import traceback

from . import logmod, log
from .defer import Deferred

class Application:
	def __init__(self, logger=None):
		self._run = False
		self._halt_pending = False
		self._close_pending = False
		if logger is None:
			logger = logmod.Logger()
		self.logger = logger
		self.add_log = self.logger.add_log
		self.loop = asyncio.new_event_loop()
		self.loop.set_exception_handler(self.handle_loop_exception)
		logmod.set_current_application(self)

	def run(self):
		self._run = True
		logmod.set_current_application(self)
		log.info('Starting pledge application')
		self.setup()
		if self._halt_pending:
			# halt() came before the loop was started
			self._halt_pending = False
			self._run = False
		while self._run:
			try:
				self.loop.run_forever()
			except SystemExit:
				log.warn("-- SystemExit raised.. exiting main loop --")
				break
			except KeyboardInterrupt:
				log.warn("-- KeyboardInterrupt raised.. exiting main loop --")
				break
		self._run = False
		log.info('Ending pledge application')
		if self._close_pending:
			self._close_pending = False
			self.close()

	def handle_loop_exception(self, loop, context):
		log.error("-- Unhandled Exception in main loop --")
		exc = context.get('exception')
		if exc is not None:
			log.error(''.join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
		else:
			log.error(context.get('message', 'unknown loop error'))

	def wake(self, callback):
		'''Run callback on the loop thread.  Safe to call from any thread.'''
		self.loop.call_soon_threadsafe(callback)

	def halt(self):
		self._run = False
		self._halt_pending = not self.loop.is_running()
		self.loop.stop()

	def close(self):
		'''Stop and release the loop.  From inside a loop callback the
		release waits until run() returns.
		'''
		self.halt()
		if self.loop.is_running():
			self._close_pending = True
			return
		self._halt_pending = False
		self.loop.close()
		if logmod.current_application() is self:
			logmod.set_current_application(None)

	def setup(self):
		pass

	def defer_to_thread(self, f, *args, **kw):
		'''Run f in a worker thread; the returned Deferred settles on the
		loop thread with f's result or exception.
		'''
		def start(settle_value, settle_error):
			def wrap():
				try:
					res = f(*args, **kw)
				except Exception as e:
					self.wake(functools.partial(settle_error, e))
				else:
					self.wake(functools.partial(settle_value, res))

			worker = threading.Thread(target=wrap, daemon=True)
			worker.start()

		return Deferred(start)
