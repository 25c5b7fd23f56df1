from ledger_vm.cli.run import main

if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
