"""Example usage of the typed_arrays library."""

from typed_arrays import (
    CollectingSink,
    ExecutionTimeline,
    ManualScheduler,
    Mode,
    build_environment,
    parse_program,
)

# A short program in the array notation
program = """
// sorting a few numbers by hand
int nums[5] = {5, 3, 8, 1, 4};
nums[0] = 1;
nums[3] = 5;
nums.insert(5, 9);
nums.remove(2);
char word[] = "swap";
word[0] = 'S';
"""

# One-shot evaluation: recognise every line, then replay it
result = build_environment(parse_program(program))
print("Final arrays:")
for name, values in result.environment.to_dict().items():
    print(f"  {name} = {values}")

# A timeline drives live and step modes; a manual scheduler stands in for
# the event loop so timers fire only when advanced
scheduler = ManualScheduler()
sink = CollectingSink()
timeline = ExecutionTimeline(program, scheduler=scheduler, sink=sink)

print("\nStepping through the program:")
timeline.set_mode(Mode.STEP)
while timeline.step_forward():
    view = timeline.current_view()
    shown = f"{view.name} = {view.values}" if view else "(no arrays)"
    print(f"  step {timeline.current_statement_index}/{timeline.total_statements}: {shown}")

# Stepping back restores the previous snapshot
timeline.step_back()
print(f"\nAfter one step back: {timeline.environment.to_dict()}")

# Editing an element rewrites the program text
timeline.set_mode(Mode.LIVE)
timeline.request_element_change(1, 7)
print("\nProgram after setting nums[1] = 7:")
print(timeline.text)

# Diagnostics arrive once typing pauses
timeline.set_text(timeline.text + "nums[10] = 0;\n")
scheduler.advance(timeline.settings.debounce_delay)
for diagnostic in sink.diagnostics:
    print(diagnostic)

timeline.close()
