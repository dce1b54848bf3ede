#!/usr/bin/env python3
"""
Child Brain Console - feed stimuli to a living agent by hand

Each line is a stimulus: ``<type> <data> [intensity]``, e.g.

    touch hold 0.8

Slash commands inspect and steer the agent (see /help). A background
watchdog keeps the heart beating while you type.

Run with: python console.py [--save-dir DIR]
"""

import argparse
import logging
import os

from childbrain import (
    Agent, InteractionType, SelectionChallenge, Watchdog, create_agent,
)


class Colors:
    """ANSI color codes for terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'
    WHITE = '\033[97m'


def clear_screen():
    os.system('cls' if os.name == 'nt' else 'clear')


def make_bar(value: float, width: int = 20, filled: str = '█', empty: str = '░') -> str:
    """Bar for a 0-100 level"""
    filled_count = int(max(0.0, min(100.0, value)) / 100.0 * width)
    return filled * filled_count + empty * (width - filled_count)


def resource_color(value: float) -> str:
    if value > 50:
        return Colors.GREEN
    elif value > 25:
        return Colors.YELLOW
    return Colors.RED


def drive_color(value: float) -> str:
    if value > 70:
        return Colors.RED
    elif value > 50:
        return Colors.YELLOW
    elif value > 30:
        return Colors.GREEN
    return Colors.CYAN


def print_dashboard(agent: Agent) -> None:
    status = agent.get_status()
    s = status.survival

    print(f"\n{Colors.BOLD}{'=' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  CHILD BRAIN STATUS - GENERATION {s.generation}{Colors.RESET}")
    print(f"{Colors.BOLD}{'=' * 60}{Colors.RESET}\n")

    print(f"  {Colors.BOLD}Resources:{Colors.RESET}")
    for name in ('energy', 'integrity', 'stability'):
        value = getattr(s, name)
        print(f"    {name:12} {resource_color(value)}[{make_bar(value)}]{Colors.RESET} {value:5.1f}")
    print()

    print(f"  {Colors.BOLD}Drives:{Colors.RESET}")
    for name in ('hunger', 'fear', 'comfort', 'loneliness', 'curiosity'):
        value = getattr(s, name)
        print(f"    {name:12} {drive_color(value)}[{make_bar(value)}]{Colors.RESET} {value:5.1f}")
    print()

    print(f"  {Colors.BOLD}Memory:{Colors.RESET}")
    print(f"    Known pains:       {status.known_pain}")
    print(f"    Known pleasures:   {status.known_pleasure}")
    print(f"    Known patterns:    {status.known_patterns}")
    print(f"    Neurons:           {status.memory.neuron_count:,}")
    print(f"    Synapses:          {status.memory.synapse_count:,}")
    print(f"    Concept patterns:  {status.memory.pattern_count}")
    print(f"    Events:            {status.patterns.event_count} ({status.patterns.total} patterns)")
    print()

    evo = status.evolution
    print(f"  {Colors.BOLD}Evolution:{Colors.RESET}")
    print(f"    Deaths:            {evo.total_deaths}")
    print(f"    Inherited fears:   {evo.inherited_fears}")
    print(f"    Dominant trait:    {evo.dominant_trait}")
    print(f"    Progress:          {evo.evolution_progress:.1f}")
    print()

    print(f"  {Colors.DIM}Ticks: {status.tick_count}  Age: {s.existence_time / 1000:.0f}s{Colors.RESET}")
    print(f"{Colors.BOLD}{'=' * 60}{Colors.RESET}\n")


def print_help():
    print(f"""
{Colors.BOLD}Child Brain Console - Commands{Colors.RESET}

  {Colors.CYAN}<type> <data> [intensity]{Colors.RESET}   - Present a stimulus (intensity 0-1)
  {Colors.CYAN}/status{Colors.RESET}                     - Show the status dashboard
  {Colors.CYAN}/tick [n]{Colors.RESET}                   - Run n heartbeats now
  {Colors.CYAN}/learn <key> <+|-> <amount>{Colors.RESET} - Teach an outcome (e.g. /learn touch:hold + 20)
  {Colors.CYAN}/bond <entity> <kind>{Colors.RESET}       - Interact ({', '.join(i.value for i in InteractionType)})
  {Colors.CYAN}/pattern <cause> <effect>{Colors.RESET}   - Teach a cause -> effect pattern
  {Colors.CYAN}/predict [event]{Colors.RESET}            - Predict what comes next
  {Colors.CYAN}/express{Colors.RESET}                    - Let the child express itself
  {Colors.CYAN}/save{Colors.RESET}                       - Save a snapshot
  {Colors.CYAN}/clear{Colors.RESET}                      - Clear the screen
  {Colors.CYAN}/help{Colors.RESET}                       - Show this help
  {Colors.CYAN}/quit{Colors.RESET}                       - Exit
""")


def handle_command(agent: Agent, parts: list) -> bool:
    """Run one slash command; returns False when the console should exit."""
    cmd = parts[0].lower()

    if cmd in ('/quit', '/exit', '/q'):
        return False

    elif cmd == '/status':
        print_dashboard(agent)

    elif cmd == '/tick':
        count = int(parts[1]) if len(parts) > 1 else 1
        for _ in range(count):
            state = agent.tick()
            if state.just_died:
                print(f"{Colors.RED}{Colors.BOLD}Died: {state.cause_of_death}.{Colors.RESET} "
                      f"Generation {state.generation + 1} is born.")
        print(f"{Colors.DIM}{count} tick(s).{Colors.RESET}\n")

    elif cmd == '/learn':
        if len(parts) < 4:
            print(f"{Colors.RED}Usage: /learn <key> <+|-> <amount>{Colors.RESET}\n")
            return True
        agent.learn_from_outcome(parts[1], parts[2] == '+', float(parts[3]))
        print(f"{Colors.GREEN}Learned.{Colors.RESET}\n")

    elif cmd == '/bond':
        if len(parts) < 3:
            print(f"{Colors.RED}Usage: /bond <entity> <kind>{Colors.RESET}\n")
            return True
        trust = agent.process_entity_interaction(parts[1], InteractionType(parts[2]))
        print(f"  Trust in {parts[1]}: {trust:.0f}\n")
        if trust > 80:
            agent.apply_selection_pressure(SelectionChallenge.BOND_FORMED)

    elif cmd == '/pattern':
        if len(parts) < 3:
            print(f"{Colors.RED}Usage: /pattern <cause> <effect>{Colors.RESET}\n")
            return True
        if not agent.record_pattern(parts[1], parts[2]):
            print(f"{Colors.YELLOW}That contradicts what I knew.{Colors.RESET}\n")

    elif cmd == '/predict':
        if len(parts) > 1:
            for p in agent.predict_events(parts[1]):
                print(f"  {p.effect:25} {p.probability:.0%}  ({p.reason})")
            outcome = agent.predict_outcome(parts[1])
            if outcome:
                print(f"  Expected outcome: {outcome}")
        concept = agent.predict_next_concept()
        print(f"  Next concept: {concept or '-'}\n")

    elif cmd == '/express':
        expression = agent.express()
        print(f"\n{Colors.MAGENTA}{Colors.BOLD}Child:{Colors.RESET} {expression.sound}"
              f"  {Colors.DIM}[{expression.type.value} {expression.intensity:.0f}]{Colors.RESET}\n")

    elif cmd == '/save':
        if agent.save():
            print(f"{Colors.GREEN}Snapshot saved.{Colors.RESET}\n")
        else:
            print(f"{Colors.RED}Nothing saved (no --save-dir, or the save failed).{Colors.RESET}\n")

    elif cmd == '/clear':
        clear_screen()

    elif cmd == '/help':
        print_help()

    else:
        print(f"{Colors.RED}Unknown command. Type /help for available commands.{Colors.RESET}\n")

    return True


def present_stimulus(agent: Agent, parts: list) -> None:
    if len(parts) < 2:
        print(f"{Colors.RED}A stimulus needs a type and data: touch hold 0.8{Colors.RESET}\n")
        return
    intensity = float(parts[2]) if len(parts) > 2 else 0.5
    response = agent.process_stimulus(parts[0], parts[1], intensity)
    if response.rejected:
        print(f"{Colors.DIM}  (ignored){Colors.RESET}\n")
        return
    expression = agent.express()
    print(f"\n{Colors.MAGENTA}{Colors.BOLD}Child:{Colors.RESET} {expression.sound}")
    print(f"{Colors.DIM}  [Reaction: {response.reaction.value} | Intensity: {response.intensity:.1f}]{Colors.RESET}\n")


def main():
    parser = argparse.ArgumentParser(description="Interactive child brain console")
    parser.add_argument('--save-dir', default=None, help="Snapshot directory (loaded if present)")
    parser.add_argument('--tick-interval', type=float, default=1.0, help="Watchdog heartbeat in seconds")
    parser.add_argument('--verbose', action='store_true', help="Show debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    print(f"""
{Colors.BOLD}{Colors.CYAN}
+===========================================================+
|                                                           |
|   CHILD BRAIN CONSOLE                                     |
|                                                           |
|   Born knowing nothing. Teach it what hurts and helps.    |
|                                                           |
+===========================================================+
{Colors.RESET}
Type {Colors.CYAN}/help{Colors.RESET} for commands, or present a stimulus: touch hold 0.8
""")

    agent = create_agent(save_directory=args.save_dir, watchdog__tick_interval=args.tick_interval)
    watchdog = Watchdog(agent)
    watchdog.start()
    if agent.persistence is not None:
        agent.persistence.start_auto_save(agent)

    try:
        while True:
            try:
                user_input = input(f"{Colors.GREEN}>{Colors.RESET} ").strip()
                if not user_input:
                    continue
                parts = user_input.split()
                if user_input.startswith('/'):
                    if not handle_command(agent, parts):
                        break
                else:
                    present_stimulus(agent, parts)

            except KeyboardInterrupt:
                print(f"\n\n{Colors.CYAN}Interrupted. Use /quit to exit properly.{Colors.RESET}\n")

            except ValueError as e:
                print(f"{Colors.RED}Error: {e}{Colors.RESET}\n")
    except EOFError:
        pass
    finally:
        watchdog.stop()
        if agent.persistence is not None:
            agent.persistence.stop_auto_save()
            agent.save()

    state = agent.get_current_state()
    print(f"\n{Colors.CYAN}Console closing. Generation {state.generation}, "
          f"{agent.tick_count} ticks.{Colors.RESET}")


if __name__ == '__main__':
    main()
