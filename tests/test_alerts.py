import pytest

from metrics.alerts import AlertTrigger


@pytest.fixture
def trigger():
    return AlertTrigger({'alerts': {
        'target_rate': 15,
        'sustained_below_s': 3.0,
        'startup_grace_s': 10.0,
        'effect_kind': 'pulse',
    }})


def run_ticks(trigger, rate, times):
    return {t: trigger.evaluate(rate, t, session_elapsed=t) for t in times}


def test_low_rate_pending_then_active_after_grace(trigger):
    results = run_ticks(trigger, 5, [float(t) for t in range(0, 14)])
    for t in range(0, 10):
        assert results[float(t)]['state'] == 'NORMAL'
    assert results[10.0]['state'] == 'PENDING'
    assert results[10.0]['pending_since'] == 10.0
    assert results[12.0]['state'] == 'PENDING'
    assert results[13.0]['state'] == 'ACTIVE'
    assert results[13.0]['fired']
    assert results[13.0]['visible']


def test_never_active_during_grace(trigger):
    results = run_ticks(trigger, 0, [t * 0.5 for t in range(20)])
    assert all(not r['visible'] and r['state'] == 'NORMAL' for r in results.values())


def test_effect_reverts_to_pending_and_needs_full_delay_again(trigger):
    run_ticks(trigger, 5, [10.0, 13.0])
    assert trigger.state == 'ACTIVE'
    assert trigger.active_until == pytest.approx(13.15)
    assert not trigger.poll(13.1)
    assert trigger.poll(13.2)
    assert trigger.state == 'PENDING'
    assert trigger.pending_since == 13.2
    assert trigger.evaluate(5, 15.0, 15.0)['state'] == 'PENDING'
    assert trigger.evaluate(5, 16.5, 16.5)['state'] == 'ACTIVE'
    assert trigger.alert_count == 2


def test_expired_effect_is_hidden_on_next_tick(trigger):
    run_ticks(trigger, 5, [10.0, 13.0])
    result = trigger.evaluate(5, 14.0, 14.0)
    assert result['state'] == 'PENDING'
    assert result['pending_since'] == 14.0
    assert not result['visible']


def test_recovered_rate_hides_immediately(trigger):
    signals = []
    trigger.add_listener(signals.append)
    run_ticks(trigger, 5, [10.0, 13.0])
    result = trigger.evaluate(15, 13.05, 13.05)
    assert result['state'] == 'NORMAL'
    assert not result['visible']
    assert trigger.pending_since is None
    assert trigger.active_until is None
    assert signals == [
        {'visible': True, 'effect_kind': 'pulse'},
        {'visible': False, 'effect_kind': 'pulse'},
    ]


def test_rate_recovering_while_pending_resets_timer(trigger):
    run_ticks(trigger, 5, [10.0, 11.0])
    trigger.evaluate(20, 12.0, 12.0)
    assert trigger.state == 'NORMAL'
    assert trigger.evaluate(5, 13.0, 13.0)['state'] == 'PENDING'
    assert trigger.evaluate(5, 15.0, 15.0)['state'] == 'PENDING'
    assert trigger.evaluate(5, 16.0, 16.0)['state'] == 'ACTIVE'


def test_sustained_effect_lasts_longer():
    trigger = AlertTrigger({'alerts': {'startup_grace_s': 0, 'sustained_below_s': 0,
                                       'effect_kind': 'sustained'}})
    trigger.evaluate(0, 1.0, 1.0)
    result = trigger.evaluate(0, 2.0, 2.0)
    assert result['state'] == 'ACTIVE'
    assert trigger.signal == {'visible': True, 'effect_kind': 'sustained'}
    assert trigger.active_until == pytest.approx(3.0)
    assert not trigger.poll(2.5)
    assert trigger.poll(3.0)


def test_no_grace_check_without_session_elapsed(trigger):
    assert trigger.evaluate(5, 1.0)['state'] == 'PENDING'


def test_runtime_tuning(trigger):
    trigger.set_target_rate(10)
    assert trigger.evaluate(12, 20.0, 20.0)['state'] == 'NORMAL'
    trigger.set_effect_kind('sustained')
    assert trigger.effect_duration == 1.0
    with pytest.raises(ValueError):
        trigger.set_effect_kind('strobe')
    with pytest.raises(ValueError):
        trigger.set_target_rate(-1)


def test_reset_hides_effect(trigger):
    run_ticks(trigger, 5, [10.0, 13.0])
    trigger.reset()
    assert trigger.state == 'NORMAL'
    assert trigger.signal == {'visible': False, 'effect_kind': 'pulse'}
    assert trigger.alert_count == 0


def test_update_config(trigger):
    trigger.update_config({'alerts': {'target_rate': 20, 'effect_durations': {'pulse': 0.3}}})
    assert trigger.target_rate == 20
    assert trigger.effect_duration == 0.3
    assert trigger.sustained_below == 3.0
