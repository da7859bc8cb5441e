## thank you, twisted (and the promise folks).
'''Single-assignment deferred results, chained with then/catch/finally_.

Every node of a chain is a Cell.  A cell is first *fed* the outcome of the
cell it hangs off, which runs its handler if it has one, and is later
*settled* with its own outcome, which it hands on to everything waiting on
it.  A Deferred is the producer-facing cell: it has no parent, so it starts
out already fed and is settled by whoever holds its settle callbacks.

A rejection nobody catches is dropped at the end of the chain.
'''
import collections
import functools
import threading

from .logmod import log
from . import timers

(
STATE_WAIT_INPUT,
STATE_SETTLING,
STATE_RESOLVED,
STATE_REJECTED,
) = range(4)

stateText = {
	STATE_WAIT_INPUT : 'waiting',
	STATE_SETTLING : 'settling',
	STATE_RESOLVED : 'resolved',
	STATE_REJECTED : 'rejected',
}

# trace every feed/settle transition at debug level
DEBUG = False

dlog = log.sub('defer')

_id_lock = threading.Lock()
_next_id = [0]

def _new_id():
	with _id_lock:
		i = _next_id[0]
		_next_id[0] += 1
	return i

_local = threading.local()

def _dispatch(calls):
	'''Run waiter notifications from a loop rather than by recursion.

	The outermost settlement on a thread drains the queue; settlements
	made while it drains only append to it, so a long chain of already
	settled links never grows the stack.
	'''
	queue = getattr(_local, 'queue', None)
	if queue is not None:
		queue.extend(calls)
		return
	queue = _local.queue = collections.deque(calls)
	try:
		while queue:
			f, arg = queue.popleft()
			f(arg)
	finally:
		_local.queue = None

class Cell:
	def __init__(self):
		self.id = _new_id()
		self.state = STATE_WAIT_INPUT
		self.result = None
		self.on_value_fed = None
		self.on_error_fed = None
		self._feed_waiters = []
		self._settle_waiters = []

	def __repr__(self):
		return '<%s %d %s>' % (self.__class__.__name__, self.id,
			stateText[self.state])

	@property
	def pending(self):
		return self.state in (STATE_WAIT_INPUT, STATE_SETTLING)

	@property
	def resolved(self):
		return self.state == STATE_RESOLVED

	@property
	def rejected(self):
		return self.state == STATE_REJECTED

	def add_feed_waiter(self, cell):
		if self.state == STATE_RESOLVED:
			cell.feed_value(self.result)
		elif self.state == STATE_REJECTED:
			cell.feed_error(self.result)
		else:
			self._feed_waiters.append(cell)

	def add_settle_waiter(self, cell):
		if self.state == STATE_RESOLVED:
			cell.settle_value(self.result)
		elif self.state == STATE_REJECTED:
			cell.settle_error(self.result)
		else:
			self._settle_waiters.append(cell)

	def _begin_feed(self, what, arg):
		if DEBUG:
			dlog.debug('%r %s(%r)' % (self, what, arg))
		if self.state != STATE_WAIT_INPUT:
			dlog.warn('%r must be waiting for input before %s(), ignored'
				% (self, what))
			return False
		self.state = STATE_SETTLING
		return True

	def feed_value(self, value):
		if self._begin_feed('feed_value', value) and self.on_value_fed:
			self.on_value_fed(value)

	def feed_error(self, err):
		if self._begin_feed('feed_error', err) and self.on_error_fed:
			self.on_error_fed(err)

	def _settle(self, state, result):
		what = state == STATE_RESOLVED and 'settle_value' or 'settle_error'
		if DEBUG:
			dlog.debug('%r %s(%r)' % (self, what, result))
		if self.state != STATE_SETTLING:
			dlog.warn('%r must be settling before %s(), ignored' % (self, what))
			return
		self.result = result
		self.state = state

		feed, self._feed_waiters = self._feed_waiters, []
		settle, self._settle_waiters = self._settle_waiters, []
		if state == STATE_RESOLVED:
			calls = [(cell.feed_value, result) for cell in feed]
			calls.extend((cell.settle_value, result) for cell in settle)
		else:
			calls = [(cell.feed_error, result) for cell in feed]
			calls.extend((cell.settle_error, result) for cell in settle)
		_dispatch(calls)

	def settle_value(self, value):
		self._settle(STATE_RESOLVED, value)

	def settle_error(self, err):
		self._settle(STATE_REJECTED, err)

	def then(self, on_value=None, on_error=None):
		cell = Continuation(on_value, on_error)
		self.add_feed_waiter(cell)
		return cell

	def catch(self, on_error):
		return self.then(None, on_error)

	def finally_(self, on_done):
		cell = Finalizer(on_done)
		self.add_feed_waiter(cell)
		return cell

	def add_callback(self, f, *args, **kw):
		return self.then(lambda value: f(value, *args, **kw))

	def add_errback(self, f, *args, **kw):
		return self.catch(lambda err: f(err, *args, **kw))

class Continuation(Cell):
	'''Runs a value or error handler on its parent's outcome and settles
	with whatever the handler produces.

	A missing handler passes the outcome straight through, which is how an
	error skips past then() calls down to the first catch().
	'''
	def __init__(self, on_value=None, on_error=None):
		Cell.__init__(self)
		self.value_handler = on_value
		self.error_handler = on_error
		self.on_value_fed = self._value_fed
		self.on_error_fed = self._error_fed

	def _value_fed(self, value):
		if self.value_handler is None:
			self.settle_value(value)
		else:
			self._run_handler(self.value_handler, value)

	def _error_fed(self, err):
		if self.error_handler is None:
			self.settle_error(err)
		else:
			self._run_handler(self.error_handler, err)

	def _run_handler(self, handler, arg):
		try:
			res = handler(arg)
		except Exception as e:
			self.settle_error(e)
			return
		if res is self:
			self.settle_error(TypeError('%r cannot wait on itself' % self))
			return
		# plain values go through an already settled Deferred so there is
		# one way of adopting a handler's result
		as_chainable(res).add_settle_waiter(self)

class Finalizer(Cell):
	'''Runs a no-argument cleanup on either outcome, then passes that
	outcome on unchanged.  A failing cleanup rejects with its own error.
	'''
	def __init__(self, on_done):
		Cell.__init__(self)
		self.cleanup = on_done
		self.on_value_fed = self._value_fed
		self.on_error_fed = self._error_fed

	def _run_cleanup(self):
		if self.cleanup is None:
			return True
		try:
			self.cleanup()
		except Exception as e:
			self.settle_error(e)
			return False
		return True

	def _value_fed(self, value):
		if self._run_cleanup():
			self.settle_value(value)

	def _error_fed(self, err):
		if self._run_cleanup():
			self.settle_error(err)

class Deferred(Cell):
	'''The producer side of a chain.

	``Deferred(setup)`` calls ``setup(settle_value, settle_error)`` right
	away; the producer calls one of them, once, whenever it has an answer.
	An exception raised by ``setup`` rejects the Deferred.  With no setup
	the owner calls settle_value/settle_error (or callback/errback) itself.
	'''
	def __init__(self, setup=None):
		Cell.__init__(self)
		# nothing feeds a Deferred; its outcome comes from the producer
		self.state = STATE_SETTLING
		if setup is None:
			return
		try:
			setup(self.settle_value, self.settle_error)
		except Exception as e:
			self.settle_error(e)

	def callback(self, value):
		self.settle_value(value)

	def errback(self, err):
		self.settle_error(err)

	@staticmethod
	def resolve(value):
		'''A Deferred that resolves with value on a later loop turn.'''
		d = Deferred()
		timers.call_soon(d.settle_value, value)
		return d

	@staticmethod
	def reject(err):
		'''A Deferred that rejects with err on a later loop turn.'''
		d = Deferred()
		timers.call_soon(d.settle_error, err)
		return d

	@staticmethod
	def all(items):
		'''Wait for every item; resolve with their values in input order,
		or reject with the first error.  Items that are not cells count as
		already resolved.
		'''
		items = list(items)
		return Deferred(lambda settle_value, settle_error:
			_Join(items, settle_value, settle_error).start())

_absent = object()

class _Join:
	def __init__(self, items, settle_value, settle_error):
		self.items = items
		self.results = [_absent] * len(items)
		self.remaining = len(items)
		self.failed = False
		self.settle_value = settle_value
		self.settle_error = settle_error

	def start(self):
		if not self.items:
			self.settle_value([])
			return
		for idx, item in enumerate(self.items):
			if isinstance(item, Cell):
				item.then(functools.partial(self.fill, idx), self.fail)
			else:
				self.fill(idx, item)

	def fill(self, idx, value):
		self.results[idx] = value
		self.remaining -= 1
		if self.remaining <= 0 and not self.failed:
			self.settle_value(list(self.results))

	def fail(self, err):
		# only the first error reaches the aggregate
		if self.failed:
			return
		self.failed = True
		self.settle_error(err)

def succeed(value):
	'''A Deferred that is already resolved with value.'''
	return Deferred(lambda settle_value, settle_error: settle_value(value))

def fail(err):
	'''A Deferred that is already rejected with err.'''
	return Deferred(lambda settle_value, settle_error: settle_error(err))

def as_chainable(result):
	if isinstance(result, Cell):
		return result
	return succeed(result)
