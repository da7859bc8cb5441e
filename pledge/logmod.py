import sys
import time

currentApplication = [None]
(
LOGLVL_DEBUG,
LOGLVL_INFO,
LOGLVL_WARN,
LOGLVL_ERR,
LOGLVL_CRITICAL,
) = range(1,6)

lvlText = {
	LOGLVL_DEBUG : 'debug',
	LOGLVL_INFO : 'info',
	LOGLVL_WARN : 'warn',
	LOGLVL_ERR : 'error',
	LOGLVL_CRITICAL : 'critical',
}


class Logger:
	'''Writes leveled log lines to one or more file objects.

	A file object of None means "whatever sys.stderr is at write time".
	'''
	def __init__(self, fd=None, verbosity=LOGLVL_WARN):
		self.fdlist = [fd]
		self.level = verbosity
		self.component = None

	def add_log(self, fd):
		self.fdlist.append(fd)

	def _writelogline(self, lvl, message):
		if lvl >= self.level:
			line = '[%s] {%s%s} %s\n' % (time.asctime(),
									self.component and ('%s:' % self.component) or '',
									lvlText[lvl],
									message)
			for fd in self.fdlist:
				(fd or sys.stderr).write(line)

	debug = lambda s, m: s._writelogline(LOGLVL_DEBUG, m)
	info = lambda s, m: s._writelogline(LOGLVL_INFO, m)
	warn = lambda s, m: s._writelogline(LOGLVL_WARN, m)
	error = lambda s, m: s._writelogline(LOGLVL_ERR, m)
	critical = lambda s, m: s._writelogline(LOGLVL_CRITICAL, m)

	def get_sublogger(self, component, verbosity=None):
		copy = Logger(verbosity=verbosity or self.level)
		copy.fdlist = self.fdlist
		copy.component = component
		return copy

default_logger = Logger()

def set_current_application(app):
	currentApplication[0] = app

def current_application():
	return currentApplication[0]

def current_logger():
	app = currentApplication[0]
	if app is None:
		return default_logger
	return app.logger

class _currentLogger:
	def __init__(self, component=None):
		self._component = component

	def __getattr__(self, n):
		logger = current_logger()
		if self._component:
			logger = logger.get_sublogger(self._component)
		return getattr(logger, n)

	def sub(self, component):
		return _currentLogger(component)

log = _currentLogger()
