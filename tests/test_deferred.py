"""Tests for the producer-facing Deferred, its factories and all()."""

import pytest

from pledge.defer import (
	Deferred,
	STATE_SETTLING,
	fail,
	succeed,
)
from pledge.errors import NoApplication
from pledge.timers import call_later


class Whoops(Exception):
	pass


def later(t, value):
	return Deferred(lambda ok, bad: call_later(t, ok, value))


def later_error(t, err):
	return Deferred(lambda ok, bad: call_later(t, bad, err))


class TestConstruction:

	def test_starts_settling(self):
		d = Deferred()
		assert d.state == STATE_SETTLING
		assert d.pending

	def test_setup_runs_synchronously(self):
		calls = []
		Deferred(lambda ok, bad: calls.append((ok, bad)))
		assert len(calls) == 1

	def test_setup_can_resolve_immediately(self):
		seen = []
		Deferred(lambda ok, bad: ok('HelloResolve')).then(seen.append)
		assert seen == ['HelloResolve']

	def test_setup_raising_rejects(self):
		boom = Whoops('w1')

		def setup(ok, bad):
			raise boom

		errors = []
		d = Deferred(setup)
		d.catch(errors.append)
		assert d.rejected
		assert errors == [boom]

	def test_setup_reject(self):
		err = Whoops('w2')
		d = Deferred(lambda ok, bad: bad(err))
		assert d.rejected and d.result is err

	def test_only_first_producer_call_counts(self, app, logbuf):
		box = {}
		d = Deferred(lambda ok, bad: box.update(ok=ok, bad=bad))
		box['ok'](1)
		box['bad'](Whoops())
		box['ok'](2)
		assert d.resolved and d.result == 1
		assert logbuf.getvalue().count('must be settling') == 2

	def test_setup_failing_after_settling_keeps_outcome(self, app):
		def setup(ok, bad):
			ok('kept')
			raise Whoops()

		d = Deferred(setup)
		assert d.result == 'kept'

	def test_callback_and_errback_aliases(self):
		d = Deferred()
		d.callback('cb')
		assert d.result == 'cb'
		e = Deferred()
		err = Whoops()
		e.errback(err)
		assert e.result is err

	def test_feeding_a_deferred_is_ignored(self, app):
		d = Deferred()
		d.feed_value(1)
		assert d.state == STATE_SETTLING

	def test_succeed_and_fail_are_already_settled(self):
		assert succeed(3).result == 3
		err = Whoops()
		f = fail(err)
		assert f.rejected and f.result is err


class TestFactories:

	def test_resolve_settles_on_a_later_turn(self, app, run_until_settled):
		d = Deferred.resolve('HelloResolveDirectly')
		seen = []
		d.then(seen.append)
		assert d.pending
		assert seen == []
		run_until_settled(d)
		assert seen == ['HelloResolveDirectly']

	def test_reject_settles_on_a_later_turn(self, app, run_until_settled):
		err = Whoops()
		d = Deferred.reject(err)
		assert d.pending
		run_until_settled(d)
		assert d.rejected and d.result is err

	def test_resolve_wraps_deferred_without_unwrapping(self, app, run_until_settled):
		inner = succeed(1)
		d = run_until_settled(Deferred.resolve(inner))
		assert d.result is inner

	def test_factories_need_an_application(self):
		with pytest.raises(NoApplication):
			Deferred.resolve(1)

	def test_chained_async_steps(self, app, run_until_settled):
		seen = []

		def step(v):
			seen.append(v)
			return later(0.01, v * 2)

		tail = later(0.01, 1).then(step).then(step).then(seen.append)
		run_until_settled(tail)
		assert seen == [1, 2, 4]


class TestAll:

	def test_results_follow_input_order(self, app, run_until_settled):
		d = Deferred.all([
			later(0.03, 1),
			later(0.02, 2),
			later(0.01, 3),
		])
		run_until_settled(d)
		assert d.resolved
		assert d.result == [1, 2, 3]

	def test_plain_values_mixed_in(self, app, run_until_settled):
		d = run_until_settled(Deferred.all([later(0.01, 4), 5, 6]))
		assert d.result == [4, 5, 6]

	def test_only_plain_values_resolve_immediately(self):
		d = Deferred.all([1, 'two', None])
		assert d.resolved
		assert d.result == [1, 'two', None]

	def test_empty_input_resolves_with_empty_list(self):
		d = Deferred.all([])
		assert d.resolved and d.result == []

	def test_accepts_any_iterable(self):
		d = Deferred.all(succeed(i) for i in range(3))
		assert d.result == [0, 1, 2]

	def test_first_error_rejects_once(self, app, run_until_settled):
		err = Whoops('w')
		slow = later(0.03, 3)
		d = Deferred.all([
			later(0.01, 1),
			later_error(0.02, err),
			slow,
		])
		errors = []
		d.catch(errors.append)
		run_until_settled(d)
		assert d.rejected and d.result is err
		# let the slow member finish; the aggregate must not change
		run_until_settled(slow)
		assert slow.resolved
		assert errors == [err]
		assert d.result is err

	def test_later_errors_are_dropped(self, app, logbuf):
		first, second = Whoops('first'), Whoops('second')
		a, b = Deferred(), Deferred()
		d = Deferred.all([a, b])
		a.settle_error(first)
		b.settle_error(second)
		assert d.result is first
		assert 'must be settling' not in logbuf.getvalue()

	def test_resolution_after_rejection_has_no_effect(self):
		a, b = Deferred(), Deferred()
		d = Deferred.all([a, b])
		err = Whoops()
		a.settle_error(err)
		b.settle_value('late')
		assert d.rejected and d.result is err

	def test_members_may_be_continuations(self):
		a = Deferred()
		d = Deferred.all([a.then(lambda v: v + 1), a])
		a.settle_value(1)
		assert d.result == [2, 1]

	def test_result_list_is_not_shared_with_later_fills(self):
		a = Deferred()
		d = Deferred.all([a, 1])
		a.settle_value(0)
		assert d.result == [0, 1]
