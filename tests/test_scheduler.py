from judgment.scheduler import TaskBoard, TaskPurpose

from .helpers import ManualScheduler


def make_board():
    scheduler = ManualScheduler()
    return TaskBoard(scheduler), scheduler


def test_task_fires_once_after_delay():
    board, scheduler = make_board()
    fired = []
    task = board.arm(TaskPurpose.TURN, 1500, fired.append, generation=1, target=("x",))
    assert task.deadline == 1.5
    scheduler.advance(1.0)
    assert fired == []
    scheduler.advance(0.5)
    assert fired == [task]
    assert board.get(TaskPurpose.TURN) is None
    scheduler.advance(10)
    assert fired == [task]


def test_rearming_replaces_the_previous_task():
    board, scheduler = make_board()
    fired = []
    first = board.arm(TaskPurpose.TURN, 1000, fired.append, generation=1)
    second = board.arm(TaskPurpose.TURN, 2000, fired.append, generation=1)
    assert first.cancelled
    scheduler.advance(5)
    assert fired == [second]


def test_keys_separate_tasks_of_the_same_purpose():
    board, scheduler = make_board()
    fired = []
    board.arm(TaskPurpose.GRACE, 1000, lambda task: fired.append(task.key), generation=1, key="a")
    board.arm(TaskPurpose.GRACE, 2000, lambda task: fired.append(task.key), generation=1, key="b")
    assert sorted(task.key for task in board.pending(TaskPurpose.GRACE)) == ["a", "b"]
    assert board.cancel(TaskPurpose.GRACE, "a")
    assert not board.cancel(TaskPurpose.GRACE, "a")
    scheduler.advance(5)
    assert fired == ["b"]


def test_cancel_all_silences_everything():
    board, scheduler = make_board()
    fired = []
    board.arm(TaskPurpose.TURN, 1000, fired.append, generation=1)
    board.arm(TaskPurpose.TEARDOWN, 1000, fired.append, generation=1)
    board.cancel_all()
    assert board.tasks == {}
    scheduler.advance(5)
    assert fired == []


def test_cancelled_task_is_skipped_even_if_its_handle_runs():
    board, scheduler = make_board()
    fired = []
    task = board.arm(TaskPurpose.ROUND_END, 1000, fired.append, generation=3)
    handle = scheduler.handles[-1]
    board.cancel(TaskPurpose.ROUND_END)
    handle.callback()
    assert fired == []
    assert task.generation == 3
