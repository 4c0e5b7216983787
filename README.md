# nachosim

Building blocks for emulating the machine underneath a small teaching
operating-system kernel. Pure Python, standard library only, Python 3.10+.
The host-service functions in `nachosim.sysdep` use POSIX facilities
(Unix datagram sockets, `select`, signal masks).

## Modules

### `nachosim.sysdep`

Checked wrappers around host services. Failures the simulation cannot
continue from raise `SysdepError`.

- Files: `open_for_write(name)` (create or truncate),
  `open_for_read_write(name, crash_on_error=True)` (returns `None` instead
  of raising when `crash_on_error` is false), `read(fd, n_bytes)` (exactly
  `n_bytes` or `SysdepError`), `read_partial(fd, n_bytes)`,
  `write_file(fd, data)`, `lseek(fd, offset, whence)` (returns the new
  position), `tell(fd)`, `close(fd)`, `unlink(name)` (returns whether the
  file was removed).
- Polling: `poll_file(fd, idle=False)` and `poll_socket(sock, idle=False)`
  return whether input is waiting; with `idle` set they wait up to
  `IDLE_POLL_SECONDS` (0.02 s) first.
- Unix datagram sockets: `open_socket()`,
  `assign_name_to_socket(socket_name, sock)` (removes a stale name, then
  binds), `send_to_socket(sock, data, to_name)`,
  `read_from_socket(sock, packet_size)` (exactly `packet_size` bytes),
  `deassign_name_to_socket(socket_name)`, `close_socket(sock)`.
- Ctrl-C: `call_on_user_abort(func)`, `block_user_abort()`,
  `unblock_user_abort()`.
- `delay(seconds)`, and a seeded generator: `random_init(seed)` and
  `random_int()`, which returns an integer from 0 to `RANDOM_MAX`
  (2**31 - 1).

### `nachosim.lists`

`ItemList`, a singly linked list of arbitrary items whose cells are
`ListElement(item, key, next)`.

- `append`, `prepend`, `pop_front` (returns `None` when empty),
  `first_element`, `is_empty`, `len()` and iteration over items.
- `remove(item)` matches by identity and raises `ValueError` if the item
  is absent.
- `mapcar(func, *args)` calls `func(item, *args)` on each item; the item
  being visited may be removed by `func`.
- `sorted_insert(item, sort_key)` keeps keys increasing, placing an item
  after existing items with an equal key; `sorted_remove()` returns
  `(item, key)` for the front cell, or `None`.

### `nachosim.timer`

`Timer(interrupt, handler, randomize=False, ticks=TIMER_TICKS, rng=None)`
emulates a hardware timer. `interrupt` is any object with
`schedule(callback, when, kind)`; the timer schedules itself with kind
`TIMER_INT` on construction and again each time `timer_expired()` runs,
before calling `handler()`. `time_of_next_interrupt()` returns `ticks`
(default 100), or with `randomize` set `1 + rng() % (2 * ticks)`, where
`rng` defaults to `sysdep.random_int`. Non-positive `ticks` raise
`ValueError`.

### `nachosim.translate`

`Memory(num_phys_pages, page_size, page_table=None, tlb=None)` holds
physical memory (`main_memory`, a `bytearray`) and translates addresses
through either a linear page table or a TLB of `TranslationEntry`
objects (`virtual_page`, `physical_page`, `valid`, `read_only`, `use`,
`dirty`). Exactly one of the two must be set when translating; otherwise
`ValueError`.

- `translate(virt_addr, size, writing=False)` returns the physical
  address and sets the entry's `use` bit (and `dirty` when writing).
- `read_mem(virt_addr, size)` and `write_mem(virt_addr, size, value)`
  access 1, 2 or 4 bytes in little-endian order; words are read back as
  signed 32-bit integers. Other sizes raise `ValueError`.
- Faults raise `MachineException` with an `exception_type` from
  `ExceptionType` and the `virt_addr`: misalignment or a page number
  past the page table give `ADDRESS_ERROR_EXCEPTION`; an invalid entry or
  a TLB miss gives `PAGE_FAULT_EXCEPTION`; writing a read-only page gives
  `READ_ONLY_EXCEPTION`; a frame outside memory gives
  `BUS_ERROR_EXCEPTION`.
- `word_to_host`, `short_to_host`, `word_to_machine`, `short_to_machine`
  convert between machine (little-endian) and host byte order.

### `nachosim.scheduler`

`Scheduler(current_thread)` keeps a FIFO `ready_list`. Threads are any
objects with `name` and `status` attributes; `status` takes
`ThreadStatus` values.

- `ready_to_run(thread)` marks it `READY` and queues it.
- `find_next_to_run()` pops the next thread, or returns `None` when the
  list is empty or after `stop()`.
- `run(next_thread)` makes it current and `RUNNING` and returns the
  previous thread. If a thread has a non-`None` `space`, its
  `save_user_state()`/`space.save_state()` are called when it is switched
  out and `restore_user_state()`/`space.restore_state()` when switched
  in; `check_overflow()` is called on the outgoing thread if present.
- `print_ready()` prints the ready list's thread names.

### `nachosim.post`

Mailbox delivery over an unreliable packet network.

- `PacketHeader(to, from_, length)` and `MailHeader(to, from_, length)`;
  `MailHeader.pack()` / `MailHeader.unpack(data)` use a 12-byte
  little-endian format (`MAIL_HEADER_SIZE`).
- `MailBox.put(pkt_hdr, mail_hdr, data)` and `MailBox.get(timeout=None)`,
  which returns a `Mail(pkt_hdr, mail_hdr, data)` or raises
  `TimeoutError`.
- `PostOffice(net_addr, network, n_boxes, max_packet_size=52)` starts a
  background postal worker thread. `network` must provide
  `send(pkt_hdr, data)` and should call `incoming_packet(pkt_hdr, packet)`
  when a packet arrives and `packet_sent()` when the next packet may go.
  `send(pkt_hdr, mail_hdr, data)` prepends the mail header, stamps the
  source address and blocks until `packet_sent()`;
  `receive(box, timeout=None)` returns `(pkt_hdr, mail_hdr, data)`;
  `deliver(pkt_hdr, packet)` files a packet directly; `shutdown()` stops
  the worker. Bad box numbers or oversized messages raise `ValueError`.
- `mail_test(post_office, far_addr)` sends "Hello there!" to box 0 of
  `far_addr`, waits for and acknowledges the other side's greeting, waits
  for its acknowledgement, prints both messages and returns them.

Debug output from `translate`, `scheduler` and `post` goes through the
standard `logging` module at `DEBUG` level.

## Example

```python
from nachosim.lists import ItemList

pending = ItemList()
pending.sorted_insert("late", 30)
pending.sorted_insert("early", 10)
item, key = pending.sorted_remove()   # ("early", 10)
```

```python
from nachosim.translate import Memory, TranslationEntry

table = [TranslationEntry(virtual_page=0, physical_page=1, valid=True)]
mem = Memory(num_phys_pages=4, page_size=128, page_table=table, tlb=None)
mem.write_mem(8, 4, 0x12345678)
assert mem.read_mem(8, 4) == 0x12345678
```

## What it does not do

This is a library of parts, not a runnable simulator. There is no
command-line program, no CPU instruction interpreter, no interrupt
controller, no thread implementation or context switching of real
stacks, and no network device: the timer, scheduler and post office
expect the caller to supply those objects.

## Tests

```
pip install -e .[test]
pytest
```