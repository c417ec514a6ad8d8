from calmorph_conv.core.base import CheckpointManager


def test_checkpoint_tracks_completed_steps(tmp_path):
    checkpoint = CheckpointManager(tmp_path / 'state')
    assert checkpoint.load_state() is None

    checkpoint.save_state('convert', 'in_progress')
    checkpoint.save_state('convert', 'completed', {'complete': 3})
    state = checkpoint.load_state()
    assert state['completed_steps'] == ['convert']
    assert state['current_step'] is None
    assert [h['status'] for h in state['history']] == ['in_progress', 'completed']

    # running a step again clears its completed mark until it finishes
    checkpoint.save_state('convert', 'in_progress')
    assert checkpoint.load_state()['completed_steps'] == []
